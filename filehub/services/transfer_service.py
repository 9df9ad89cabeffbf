"""Upload/download orchestration: authorization around the file registry and chunk store."""

import secrets
from typing import Iterator, List, Optional, Tuple

from common.logging_config import get_logger
from filehub.exceptions import (
    FileNotFoundError,
    InvalidChunkIndexError,
    InvalidRequestError,
    InvalidSessionError,
    MissingChunkError,
    NoChunksFoundError,
    UnauthorizedAccessError,
)
from filehub.policies import authorize_file_access, has_capability, Capability
from filehub.repositories.chunk_repository import ChunkRepository
from filehub.repositories.file_repository import File
from filehub.services.auth_service import AuthService
from filehub.services.file_registry import FileRegistry
from filehub.types import DownloadResult, FileMetadata, Identity
from filehub.utils import parse_share_link

logger = get_logger(__name__)


def to_metadata(file: File) -> FileMetadata:
    return FileMetadata(
        file_id=file.file_id,
        owner_id=file.owner_id,
        filename=file.filename,
        mime_type=file.mime_type,
        total_size=file.total_size,
        total_chunks=file.total_chunks,
        status=file.status,
        created_at=file.created_at,
        share_token=file.share_token,
    )


class TransferService:
    def __init__(
        self,
        registry: Optional[FileRegistry] = None,
        chunk_repo: Optional[ChunkRepository] = None,
        auth_service: Optional[AuthService] = None,
    ):
        self.registry = registry or FileRegistry()
        self.chunk_repo = chunk_repo or self.registry.chunk_repo
        self.auth_service = auth_service or AuthService()

    def init_upload(
        self,
        identity: Identity,
        filename: str,
        mime_type: str,
        total_size: int,
        total_chunks: int,
    ) -> str:
        if total_size < 0 or total_chunks < 0:
            raise InvalidRequestError("total_size and total_chunks must not be negative")
        if not filename:
            raise InvalidRequestError("filename must not be empty")

        file = self.registry.create(
            owner_id=identity.user_id,
            filename=filename,
            mime_type=mime_type or "application/octet-stream",
            total_size=total_size,
            total_chunks=total_chunks,
        )
        return file.file_id

    def upload_chunk(self, identity: Identity, file_id: str, chunk_index: int, data: bytes) -> int:
        file = self.registry.get(file_id)
        authorize_file_access(identity, file.owner_id, file_id)
        return self.registry.put_chunk(file_id, chunk_index, data)

    def finalize_upload(self, identity: Identity, file_id: str) -> FileMetadata:
        file = self.registry.get(file_id)
        authorize_file_access(identity, file.owner_id, file_id)
        return to_metadata(self.registry.finalize(file_id))

    def delete_file(self, identity: Identity, file_id: str) -> None:
        file = self.registry.get(file_id)
        authorize_file_access(identity, file.owner_id, file_id)
        self.registry.delete(file_id)

    def generate_share_link(self, identity: Identity, file_id: str) -> str:
        file = self.registry.get(file_id)
        authorize_file_access(identity, file.owner_id, file_id)
        return self.registry.ensure_share_token(file_id)

    def list_files(self, identity: Identity) -> List[FileMetadata]:
        if has_capability(identity, Capability.LIST_ALL_FILES):
            files = self.registry.list_all()
        else:
            files = self.registry.list_for_owner(identity.user_id)
        return [to_metadata(file) for file in files]

    def _authorize_read(
        self,
        file_id: str,
        session_token: Optional[str],
        share_token: Optional[str],
    ) -> File:
        """
        A share token bound to this exact file grants access on its own;
        otherwise the session must belong to the owner or an elevated role.
        """
        file = self.registry.get(file_id)

        if share_token and file.share_token and secrets.compare_digest(share_token, file.share_token):
            logger.debug(f"Read granted by share token [file_id={file_id}]")
            return file

        if not session_token:
            logger.warning(f"Read denied: no valid share token or session [file_id={file_id}]")
            raise UnauthorizedAccessError(f"Access to file {file_id} requires a session or share token")

        try:
            identity = self.auth_service.resolve(session_token)
        except InvalidSessionError:
            raise UnauthorizedAccessError(f"Access to file {file_id} requires a valid session")

        authorize_file_access(identity, file.owner_id, file_id)
        return file

    def get_file_metadata(
        self,
        file_id: str,
        session_token: Optional[str] = None,
        share_token: Optional[str] = None,
    ) -> FileMetadata:
        return to_metadata(self._authorize_read(file_id, session_token, share_token))

    def download_file(
        self,
        file_id: str,
        session_token: Optional[str] = None,
        share_token: Optional[str] = None,
    ) -> DownloadResult:
        """
        Assemble the whole file in memory.

        Raises:
            MissingChunkError: naming the first absent chunk
            NoChunksFoundError: if the file has no data
        """
        file = self._authorize_read(file_id, session_token, share_token)
        data = self.chunk_repo.assemble(file_id, file.total_chunks)
        logger.info(f"Assembled download of {len(data)} bytes [file_id={file_id}]")
        return DownloadResult(data=data, mime_type=file.mime_type, filename=file.filename)

    def open_download(
        self,
        file_id: str,
        session_token: Optional[str] = None,
        share_token: Optional[str] = None,
    ) -> Tuple[FileMetadata, Iterator[bytes]]:
        """
        Verify completeness up front, then hand back a chunk-by-chunk reader.

        Raises:
            MissingChunkError: naming the first absent chunk
            NoChunksFoundError: if the file has no chunks or only empty ones
        """
        file = self._authorize_read(file_id, session_token, share_token)
        if file.total_chunks <= 0:
            raise NoChunksFoundError(f"File {file_id} has no chunks")

        missing = self.chunk_repo.first_missing(file_id, file.total_chunks)
        if missing is not None:
            raise MissingChunkError(file_id, missing)
        if self.chunk_repo.stored_bytes(file_id, file.total_chunks) == 0:
            raise NoChunksFoundError(f"File {file_id} has no data")

        logger.info(f"Streaming download of {file.total_chunks} chunks [file_id={file_id}]")
        return to_metadata(file), self.chunk_repo.iter_chunks(file_id, file.total_chunks)

    def get_file_chunk(
        self,
        file_id: str,
        chunk_index: int,
        session_token: Optional[str] = None,
        share_token: Optional[str] = None,
    ) -> bytes:
        file = self._authorize_read(file_id, session_token, share_token)
        if not 0 <= chunk_index < file.total_chunks:
            raise InvalidChunkIndexError(
                f"Chunk index {chunk_index} outside [0, {file.total_chunks}) for file {file_id}"
            )

        chunk = self.chunk_repo.get(file_id, chunk_index)
        if chunk is None:
            raise MissingChunkError(file_id, chunk_index)
        return chunk.data

    def open_share_link(self, link: str) -> Tuple[FileMetadata, Iterator[bytes]]:
        """
        Resolve an external ``{file_id}_{share_token}`` link.

        A malformed link, or one whose token is not bound to that file,
        reads as not found.
        """
        parsed = parse_share_link(link)
        if parsed is None:
            raise FileNotFoundError("Share link not found")

        file_id, share_token = parsed
        file = self.registry.find_by_share_token(share_token)
        if file is None or file.file_id != file_id:
            logger.warning(f"Share link rejected [file_id={file_id}]")
            raise FileNotFoundError("Share link not found")

        return self.open_download(file_id, share_token=share_token)

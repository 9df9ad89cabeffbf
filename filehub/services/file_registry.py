"""File registry: file records and the Pending -> Complete state machine."""

from datetime import datetime
from typing import List, Optional

from common.logging_config import get_logger
from filehub.auth import generate_share_token
from filehub.database import transaction
from filehub.exceptions import (
    FileNotFoundError,
    InvalidChunkIndexError,
    MissingChunkError,
    UploadAlreadyCompleteError,
)
from filehub.locks import KeyedLock, file_locks
from filehub.repositories.chunk_repository import ChunkRepository
from filehub.repositories.file_repository import File, FileRepository
from filehub.services.quota_service import QuotaLedger
from filehub.utils import generate_uuid, utcnow

logger = get_logger(__name__)


class FileRegistry:
    """
    Owns every state change of a file record.

    Lock order is file lock, then user (ledger) lock, then the database
    transaction. Authorization is the caller's job.
    """

    def __init__(
        self,
        file_repo: Optional[FileRepository] = None,
        chunk_repo: Optional[ChunkRepository] = None,
        ledger: Optional[QuotaLedger] = None,
        locks: Optional[KeyedLock] = None,
    ):
        self.file_repo = file_repo or FileRepository()
        self.chunk_repo = chunk_repo or ChunkRepository()
        self.ledger = ledger or QuotaLedger()
        self.locks = locks or file_locks

    def get(self, file_id: str) -> File:
        file = self.file_repo.get_by_id(file_id)
        if file is None:
            raise FileNotFoundError(f"File {file_id} not found")
        return file

    def create(
        self,
        owner_id: str,
        filename: str,
        mime_type: str,
        total_size: int,
        total_chunks: int,
    ) -> File:
        """
        Admit the upload against the owner's quota and create a Pending record.

        Raises:
            QuotaExceededError: if the declared size does not fit
        """
        with self.ledger.hold(owner_id), transaction() as conn:
            self.ledger.check_and_reserve(owner_id, total_size, conn=conn)
            file = self.file_repo.create_file(
                file_id=generate_uuid(),
                owner_id=owner_id,
                filename=filename,
                mime_type=mime_type,
                total_size=total_size,
                total_chunks=total_chunks,
                created_at=utcnow(),
                conn=conn,
            )

        logger.info(
            f"Upload initiated: '{filename}' {total_size} bytes in {total_chunks} chunks "
            f"[file_id={file.file_id}] [user_id={owner_id}]"
        )
        return file

    def put_chunk(self, file_id: str, chunk_index: int, data: bytes) -> int:
        """
        Store one chunk and return how many of the file's chunks are present.

        Raises:
            FileNotFoundError: if the file was deleted
            UploadAlreadyCompleteError: if the file was already finalized
            InvalidChunkIndexError: if the index is outside [0, total_chunks)
        """
        with self.locks.hold(file_id), transaction() as conn:
            file = self.file_repo.get_by_id(file_id, conn=conn)
            if file is None:
                raise FileNotFoundError(f"File {file_id} not found")
            if file.is_complete:
                raise UploadAlreadyCompleteError(f"File {file_id} is already complete")
            if not 0 <= chunk_index < file.total_chunks:
                raise InvalidChunkIndexError(
                    f"Chunk index {chunk_index} outside [0, {file.total_chunks}) for file {file_id}"
                )

            self.chunk_repo.put(file_id, chunk_index, data, conn=conn)
            self.file_repo.touch(file_id, utcnow(), conn=conn)
            present = self.chunk_repo.count(file_id, file.total_chunks, conn=conn)

        logger.info(f"Chunk {chunk_index} stored, {present}/{file.total_chunks} present [file_id={file_id}]")
        return present

    def finalize(self, file_id: str) -> File:
        """
        Mark a fully uploaded file Complete and credit its size exactly once.

        Finalizing a file that is already Complete changes nothing.

        Raises:
            FileNotFoundError: if the file does not exist
            MissingChunkError: naming the lowest absent chunk index
        """
        with self.locks.hold(file_id):
            file = self.get(file_id)
            if file.is_complete:
                logger.info(f"Finalize ignored, file already complete [file_id={file_id}]")
                return file

            with self.ledger.hold(file.owner_id), transaction() as conn:
                missing = self.chunk_repo.first_missing(file_id, file.total_chunks, conn=conn)
                if missing is not None:
                    logger.warning(f"Finalize rejected: chunk {missing} missing [file_id={file_id}]")
                    raise MissingChunkError(file_id, missing)

                if self.file_repo.mark_complete(file_id, conn=conn):
                    self.ledger.credit(file.owner_id, file.total_size, conn=conn)

            logger.info(f"Upload finalized: {file.total_size} bytes [file_id={file_id}] [user_id={file.owner_id}]")
            return self.get(file_id)

    def delete(self, file_id: str) -> File:
        """
        Remove a file, its chunks and its share binding.

        Usage is released only for Complete files; a Pending upload gives back
        its reservation instead.

        Raises:
            FileNotFoundError: if the file does not exist
        """
        with self.locks.hold(file_id):
            file = self.get(file_id)
            self._remove(file)
        logger.info(f"File deleted [file_id={file_id}] [user_id={file.owner_id}]")
        return file

    def _remove(self, file: File) -> None:
        with self.ledger.hold(file.owner_id), transaction() as conn:
            self.chunk_repo.delete_all(file.file_id, conn=conn)
            self.file_repo.delete_file(file.file_id, conn=conn)
            if file.is_complete:
                self.ledger.release(file.owner_id, file.total_size, conn=conn)
            else:
                self.ledger.release_reservation(file.owner_id, file.total_size, conn=conn)

    def ensure_share_token(self, file_id: str) -> str:
        """
        Return the file's share token, creating it on first request.
        """
        with self.locks.hold(file_id):
            file = self.get(file_id)
            if file.share_token:
                return file.share_token

            share_token = generate_share_token()
            self.file_repo.set_share_token(file_id, share_token)
            return share_token

    def find_by_share_token(self, share_token: str) -> Optional[File]:
        return self.file_repo.get_by_share_token(share_token)

    def list_for_owner(self, owner_id: str) -> List[File]:
        return self.file_repo.list_by_owner(owner_id)

    def list_all(self) -> List[File]:
        return self.file_repo.list_all()

    def sweep_abandoned(self, cutoff: datetime) -> List[str]:
        """
        Delete Pending uploads with no activity since ``cutoff``.

        Returns:
            IDs of the removed files
        """
        removed = []
        for stale in self.file_repo.list_stale_pending(cutoff):
            with self.locks.hold(stale.file_id):
                file = self.file_repo.get_by_id(stale.file_id)
                if file is None or file.is_complete or file.last_activity_at >= cutoff:
                    continue
                self._remove(file)
            removed.append(file.file_id)
            logger.info(f"Swept abandoned upload [file_id={file.file_id}] [user_id={file.owner_id}]")
        return removed

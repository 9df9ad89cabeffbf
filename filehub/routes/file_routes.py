"""File retrieval, deletion and sharing API routes."""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import StreamingResponse

from filehub.auth import get_current_identity, get_optional_session_token
from filehub.schemas.files import FileMetadataResponse, ListFilesResponse, ShareLinkResponse
from filehub.services.transfer_service import TransferService
from filehub.types import FileMetadata, Identity
from filehub.utils import format_share_link

router = APIRouter(prefix="/files", tags=["Files"])

share_router = APIRouter(prefix="/share", tags=["Sharing"])


def file_response(metadata: FileMetadata) -> FileMetadataResponse:
    return FileMetadataResponse(
        file_id=metadata.file_id,
        owner_id=metadata.owner_id,
        filename=metadata.filename,
        mime_type=metadata.mime_type,
        total_size=metadata.total_size,
        total_chunks=metadata.total_chunks,
        status=metadata.status,
        created_at=metadata.created_at.isoformat(),
        share_token=metadata.share_token,
    )


def _stream(metadata: FileMetadata, chunks) -> StreamingResponse:
    return StreamingResponse(
        chunks,
        media_type=metadata.mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(metadata.filename)}"}
    )


@router.get("", response_model=ListFilesResponse)
def list_files(identity: Identity = Depends(get_current_identity)):
    """
    List the caller's files; Master and Staff see every file.
    """
    files = TransferService().list_files(identity)
    return ListFilesResponse(files=[file_response(f) for f in files])


@router.get("/{file_id}", response_model=FileMetadataResponse)
def get_file_metadata(
    file_id: str,
    share_token: Optional[str] = Query(None),
    session_token: Optional[str] = Depends(get_optional_session_token)
):
    metadata = TransferService().get_file_metadata(file_id, session_token, share_token)
    return file_response(metadata)


@router.get("/{file_id}/download")
def download_file(
    file_id: str,
    share_token: Optional[str] = Query(None),
    session_token: Optional[str] = Depends(get_optional_session_token)
):
    """
    Download a whole file, streamed chunk by chunk.

    Access is granted by a share token bound to this file, or by a session
    of the owner or a Master/Staff account.

    Raises:
        - 403: No valid share token or session
        - 404: File not found
        - 409: File has missing chunks or no data
    """
    metadata, chunks = TransferService().open_download(file_id, session_token, share_token)
    return _stream(metadata, chunks)


@router.get("/{file_id}/chunks/{chunk_index}")
def get_file_chunk(
    file_id: str,
    chunk_index: int,
    share_token: Optional[str] = Query(None),
    session_token: Optional[str] = Depends(get_optional_session_token)
):
    """
    Fetch a single chunk, so clients can download large files in bounded pieces.
    """
    data = TransferService().get_file_chunk(file_id, chunk_index, session_token, share_token)
    return Response(content=data, media_type="application/octet-stream")


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(file_id: str, identity: Identity = Depends(get_current_identity)):
    """
    Delete a file, its chunks and its share link, and give back its quota.
    """
    TransferService().delete_file(identity, file_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{file_id}/share", response_model=ShareLinkResponse)
def generate_share_link(file_id: str, identity: Identity = Depends(get_current_identity)):
    """
    Return the file's share token, creating it on first request.

    Returns:
        - share_token: Token granting anonymous download of this file
        - share_link: External form "{file_id}_{share_token}"
    """
    share_token = TransferService().generate_share_link(identity, file_id)
    return ShareLinkResponse(
        file_id=file_id,
        share_token=share_token,
        share_link=format_share_link(file_id, share_token),
    )


@share_router.get("/{link}")
def download_shared_file(link: str):
    """
    Download a file through its external share link "{file_id}_{share_token}".
    """
    metadata, chunks = TransferService().open_share_link(link)
    return _stream(metadata, chunks)

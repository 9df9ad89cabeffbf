"""Chunked upload API routes."""

from fastapi import APIRouter, Depends, Request, status
from starlette.concurrency import run_in_threadpool

from filehub.auth import get_current_identity
from filehub.routes.file_routes import file_response
from filehub.schemas.common import ErrorResponse
from filehub.schemas.files import (
    FileMetadataResponse,
    InitUploadRequest,
    InitUploadResponse,
    UploadChunkResponse
)
from filehub.services.transfer_service import TransferService
from filehub.types import Identity

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post(
    "",
    response_model=InitUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={413: {"model": ErrorResponse}}
)
def init_upload(request: InitUploadRequest, identity: Identity = Depends(get_current_identity)):
    """
    Start a chunked upload.

    Parameters:
        - filename, mime_type: Stored with the file
        - total_size: Declared size in bytes, checked against the caller's quota
        - total_chunks: Number of chunks the client will send

    Raises:
        - 401: Invalid or missing session
        - 413: Quota exceeded
    """
    file_id = TransferService().init_upload(
        identity,
        filename=request.filename,
        mime_type=request.mime_type,
        total_size=request.total_size,
        total_chunks=request.total_chunks,
    )
    return InitUploadResponse(file_id=file_id)


@router.put("/{file_id}/chunks/{chunk_index}", response_model=UploadChunkResponse)
async def upload_chunk(
    file_id: str,
    chunk_index: int,
    request: Request,
    identity: Identity = Depends(get_current_identity)
):
    """
    Store one chunk. The request body is the raw chunk bytes.

    Chunks may arrive in any order and may be resent; a resent index
    overwrites the earlier data and is counted once.

    Returns:
        - chunks_present: How many of the file's chunks are stored now

    Raises:
        - 400: Chunk index out of range
        - 403: Caller is neither owner nor Master/Staff
        - 404: File not found
        - 409: File already finalized
    """
    data = await request.body()
    present = await run_in_threadpool(
        TransferService().upload_chunk, identity, file_id, chunk_index, data
    )
    return UploadChunkResponse(file_id=file_id, chunk_index=chunk_index, chunks_present=present)


@router.post(
    "/{file_id}/finalize",
    response_model=FileMetadataResponse,
    responses={409: {"model": ErrorResponse}}
)
def finalize_upload(file_id: str, identity: Identity = Depends(get_current_identity)):
    """
    Mark the upload complete once every chunk is stored.

    Raises:
        - 403: Caller is neither owner nor Master/Staff
        - 404: File not found
        - 409: A chunk is missing (the response names the lowest missing index)
    """
    metadata = TransferService().finalize_upload(identity, file_id)
    return file_response(metadata)

"""Pydantic schemas for upload and file endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field

from common.constants import CHUNK_SIZE_BYTES
from filehub.types import UploadStatus


class InitUploadRequest(BaseModel):
    """Request model for starting a chunked upload."""
    filename: str = Field(..., min_length=1)
    mime_type: str = "application/octet-stream"
    total_size: int = Field(..., ge=0)
    total_chunks: int = Field(..., ge=0)


class InitUploadResponse(BaseModel):
    """Response model for a started upload."""
    file_id: str
    chunk_size: int = CHUNK_SIZE_BYTES


class UploadChunkResponse(BaseModel):
    """Response model for a stored chunk."""
    file_id: str
    chunk_index: int
    chunks_present: int


class FileMetadataResponse(BaseModel):
    """Response model for file metadata."""
    file_id: str
    owner_id: str
    filename: str
    mime_type: str
    total_size: int
    total_chunks: int
    status: UploadStatus
    created_at: str
    share_token: Optional[str] = None


class ListFilesResponse(BaseModel):
    """Response model for file listing."""
    files: List[FileMetadataResponse]


class ShareLinkResponse(BaseModel):
    """Response model for share link generation."""
    file_id: str
    share_token: str
    share_link: str

"""Pydantic schemas for API requests and responses."""

from filehub.schemas.auth import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    LoginResponse,
    SessionResponse
)
from filehub.schemas.users import (
    UserProfileResponse,
    ListUsersResponse,
    CreateUserRequest,
    UpdateAllocationRequest,
    UpdateRoleRequest
)
from filehub.schemas.files import (
    InitUploadRequest,
    InitUploadResponse,
    UploadChunkResponse,
    FileMetadataResponse,
    ListFilesResponse,
    ShareLinkResponse
)
from filehub.schemas.common import ErrorResponse, StorageStatsResponse

__all__ = [
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "LoginResponse",
    "SessionResponse",
    "UserProfileResponse",
    "ListUsersResponse",
    "CreateUserRequest",
    "UpdateAllocationRequest",
    "UpdateRoleRequest",
    "InitUploadRequest",
    "InitUploadResponse",
    "UploadChunkResponse",
    "FileMetadataResponse",
    "ListFilesResponse",
    "ShareLinkResponse",
    "ErrorResponse",
    "StorageStatsResponse"
]

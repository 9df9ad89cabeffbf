"""FileHub-specific data type definitions."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Closed set of account roles."""
    MASTER = "Master"
    STAFF = "Staff"
    CLIENT = "Client"


class UploadStatus(str, Enum):
    """File lifecycle states. Transitions only go PENDING -> COMPLETE."""
    PENDING = "Pending"
    COMPLETE = "Complete"


@dataclass(frozen=True)
class Identity:
    """
    The authenticated caller behind a session token.
    """
    user_id: str
    username: str
    role: Role


@dataclass(frozen=True)
class StorageStats:
    quota: int
    used_bytes: int
    gb_allocation: int


@dataclass(frozen=True)
class FileMetadata:
    """
    Complete metadata for a file in the system.
    """
    file_id: str
    owner_id: str
    filename: str
    mime_type: str
    total_size: int
    total_chunks: int
    status: UploadStatus
    created_at: datetime
    share_token: Optional[str] = None


@dataclass(frozen=True)
class DownloadResult:
    data: bytes
    mime_type: str
    filename: str

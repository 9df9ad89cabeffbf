"""Repository layer for data access."""

from filehub.repositories.user_repository import UserRepository
from filehub.repositories.session_repository import SessionRepository
from filehub.repositories.file_repository import FileRepository
from filehub.repositories.chunk_repository import ChunkRepository

__all__ = [
    "UserRepository",
    "SessionRepository",
    "FileRepository",
    "ChunkRepository",
]

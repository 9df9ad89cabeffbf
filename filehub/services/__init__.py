"""Service layer for business logic."""

from filehub.services.auth_service import AuthService
from filehub.services.quota_service import QuotaLedger
from filehub.services.file_registry import FileRegistry
from filehub.services.transfer_service import TransferService
from filehub.services.user_service import UserService

__all__ = [
    "AuthService",
    "QuotaLedger",
    "FileRegistry",
    "TransferService",
    "UserService",
]

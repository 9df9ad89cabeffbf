"""Shared pytest fixtures for all tests."""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from filehub.database import init_database
from filehub.repositories.user_repository import UserRepository
from filehub.services.file_registry import FileRegistry
from filehub.services.quota_service import QuotaLedger
from filehub.services.transfer_service import TransferService
from filehub.types import Identity, Role
from filehub.utils import generate_uuid, utcnow


@pytest.fixture
def test_db(monkeypatch) -> Generator[Path, None, None]:
    """
    Create a temporary test database for each test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        monkeypatch.setattr("filehub.database.DATABASE_PATH", str(db_path))
        monkeypatch.setattr("filehub.config.DATABASE_PATH", str(db_path))
        init_database()
        yield db_path


@pytest.fixture
def make_user(test_db):
    """
    Factory creating a user row directly and returning its Identity.

    Args:
        username: Unique username
        role: Account role
        quota_bytes: Quota in bytes (gb_allocation is kept at 1 for display)
    """
    def _make_user(username: str, role: Role = Role.CLIENT, quota_bytes: int = 10_000_000) -> Identity:
        user = UserRepository.create_user(
            user_id=generate_uuid(),
            username=username,
            password_hash="not-a-real-hash",
            role=role,
            gb_allocation=1,
            quota_bytes=quota_bytes,
            created_at=utcnow(),
        )
        return Identity(user_id=user.user_id, username=user.username, role=user.role)

    return _make_user


@pytest.fixture
def ledger(test_db) -> QuotaLedger:
    return QuotaLedger(mode="reserve")


@pytest.fixture
def registry(ledger) -> FileRegistry:
    return FileRegistry(ledger=ledger)


@pytest.fixture
def transfer(registry) -> TransferService:
    return TransferService(registry=registry)


@pytest.fixture
def alice(make_user) -> Identity:
    return make_user("alice")


@pytest.fixture
def bob(make_user) -> Identity:
    return make_user("bob")


@pytest.fixture
def staff(make_user) -> Identity:
    return make_user("staff", role=Role.STAFF)


@pytest.fixture
def master(make_user) -> Identity:
    return make_user("root", role=Role.MASTER, quota_bytes=100_000_000)


@pytest.fixture
def upload_file(transfer):
    """
    Factory running a full init/put/finalize cycle and returning the file id.
    """
    def _upload_file(identity: Identity, chunks, filename: str = "data.bin") -> str:
        file_id = transfer.init_upload(
            identity,
            filename=filename,
            mime_type="application/octet-stream",
            total_size=sum(len(chunk) for chunk in chunks),
            total_chunks=len(chunks),
        )
        for index, chunk in enumerate(chunks):
            transfer.upload_chunk(identity, file_id, index, chunk)
        transfer.finalize_upload(identity, file_id)
        return file_id

    return _upload_file

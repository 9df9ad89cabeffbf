"""Per-user storage ledger: quota checks, reservations, credits and releases."""

from contextlib import contextmanager
from typing import Generator, Optional

from common.logging_config import get_logger
from filehub.config import QUOTA_MODE
from filehub.database import connection_scope
from filehub.exceptions import QuotaExceededError, UserNotFoundError
from filehub.locks import KeyedLock, user_locks
from filehub.repositories.user_repository import UserRepository
from filehub.types import StorageStats

logger = get_logger(__name__)

RESERVE_MODE = "reserve"
CHECK_MODE = "check"


class QuotaLedger:
    """
    Storage accounting for one or more users.

    In ``reserve`` mode the declared size of an upload is reserved at init and
    turned into usage at finalize, so concurrent inits cannot jointly exceed
    the quota. ``check`` mode only compares at init and credits at finalize
    without revalidation; two concurrent uploads may then both pass the check
    and overshoot the quota.

    Every mutation runs under the user's lock. Callers that want the ledger
    update inside a wider transaction must take ``hold(user_id)`` before
    opening that transaction.
    """

    def __init__(
        self,
        mode: Optional[str] = None,
        user_repo: Optional[UserRepository] = None,
        locks: Optional[KeyedLock] = None,
    ):
        self.mode = mode or QUOTA_MODE
        if self.mode not in (RESERVE_MODE, CHECK_MODE):
            raise ValueError(f"Unknown quota mode: {self.mode}")
        self.user_repo = user_repo or UserRepository()
        self.locks = locks or user_locks

    @property
    def reserves(self) -> bool:
        return self.mode == RESERVE_MODE

    @contextmanager
    def hold(self, user_id: str) -> Generator[None, None, None]:
        with self.locks.hold(user_id):
            yield

    def check_and_reserve(self, user_id: str, declared_size: int, conn=None) -> None:
        """
        Admit an upload of ``declared_size`` bytes.

        Raises:
            UserNotFoundError: if the user does not exist
            QuotaExceededError: if usage plus the declared size exceeds the quota
        """
        with self.hold(user_id), connection_scope(conn) as conn:
            if self.reserves and self.user_repo.try_reserve(user_id, declared_size, conn=conn):
                logger.debug(f"Reserved {declared_size} bytes [user_id={user_id}]")
                return

            user = self.user_repo.get_by_user_id(user_id, conn=conn)
            if user is None:
                raise UserNotFoundError(f"User {user_id} not found")

            committed = user.used_bytes + (user.reserved_bytes if self.reserves else 0)
            if self.reserves or committed + declared_size > user.quota_bytes:
                logger.warning(
                    f"Quota exceeded: need {declared_size}, used {user.used_bytes}, "
                    f"reserved {user.reserved_bytes}, quota {user.quota_bytes} [user_id={user_id}]"
                )
                raise QuotaExceededError(
                    user_id=user_id,
                    quota_bytes=user.quota_bytes,
                    used_bytes=committed,
                    required_bytes=declared_size,
                )

    def credit(self, user_id: str, size: int, conn=None) -> None:
        """Count a finalized upload against the user's usage."""
        with self.hold(user_id), connection_scope(conn) as conn:
            if self.reserves:
                self.user_repo.commit_reservation(user_id, size, conn=conn)
            else:
                self.user_repo.add_used(user_id, size, conn=conn)
        logger.info(f"Credited {size} bytes [user_id={user_id}]")

    def release(self, user_id: str, size: int, conn=None) -> None:
        """Give back the bytes of a deleted Complete file, floored at zero."""
        with self.hold(user_id), connection_scope(conn) as conn:
            self.user_repo.release_used(user_id, size, conn=conn)
        logger.info(f"Released {size} bytes [user_id={user_id}]")

    def release_reservation(self, user_id: str, size: int, conn=None) -> None:
        """Drop the reservation of an upload that will never be finalized."""
        if not self.reserves:
            return
        with self.hold(user_id), connection_scope(conn) as conn:
            self.user_repo.release_reserved(user_id, size, conn=conn)
        logger.debug(f"Dropped reservation of {size} bytes [user_id={user_id}]")

    def stats(self, user_id: str) -> StorageStats:
        user = self.user_repo.get_by_user_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return StorageStats(
            quota=user.quota_bytes,
            used_bytes=user.used_bytes,
            gb_allocation=user.gb_allocation,
        )

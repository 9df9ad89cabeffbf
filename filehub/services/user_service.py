"""User administration and storage statistics."""

from typing import List, Optional

from common.logging_config import get_logger
from filehub.config import DEFAULT_USER_GB_ALLOCATION
from filehub.database import transaction
from filehub.exceptions import InvalidRequestError, UserNotFoundError
from filehub.locks import KeyedLock, user_locks
from filehub.policies import (
    authorize_change_role,
    authorize_create_user,
    authorize_delete_user,
    authorize_list_users,
    authorize_set_allocation,
    authorize_view_storage,
)
from filehub.repositories.user_repository import User, UserRepository
from filehub.services.auth_service import AuthService
from filehub.services.quota_service import QuotaLedger
from filehub.types import Identity, Role, StorageStats
from filehub.utils import gb_to_bytes

logger = get_logger(__name__)


class UserService:
    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        auth_service: Optional[AuthService] = None,
        ledger: Optional[QuotaLedger] = None,
        locks: Optional[KeyedLock] = None,
    ):
        self.user_repo = user_repo or UserRepository()
        self.auth_service = auth_service or AuthService(user_repo=self.user_repo)
        self.ledger = ledger or QuotaLedger(user_repo=self.user_repo)
        self.locks = locks or user_locks

    def _get_user(self, user_id: str) -> User:
        user = self.user_repo.get_by_user_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    def get_me(self, identity: Identity) -> User:
        return self._get_user(identity.user_id)

    def list_users(self, identity: Identity) -> List[User]:
        authorize_list_users(identity)
        return self.user_repo.get_all_users()

    def create_user(self, identity: Identity, username: str, password: str, role: Role) -> User:
        authorize_create_user(identity, role)
        user = self.auth_service.create_account(username, password, role, DEFAULT_USER_GB_ALLOCATION)
        logger.info(
            f"User '{username}' created with role {role.value} by {identity.username} "
            f"[user_id={user.user_id}]"
        )
        return user

    def delete_user(self, identity: Identity, user_id: str) -> None:
        """
        Delete an account together with its sessions, files and chunks.
        """
        target = self._get_user(user_id)
        authorize_delete_user(identity, target.role)

        with self.locks.hold(user_id), transaction() as conn:
            self.user_repo.delete_user(user_id, conn=conn)
        logger.info(f"User '{target.username}' deleted by {identity.username} [user_id={user_id}]")

    def update_allocation(self, identity: Identity, user_id: str, gb_allocation: int) -> User:
        if gb_allocation < 1:
            raise InvalidRequestError("Allocation must be at least 1 GB")

        target = self._get_user(user_id)
        authorize_set_allocation(identity, target.role)

        with self.locks.hold(user_id):
            if not self.user_repo.update_allocation(user_id, gb_allocation, gb_to_bytes(gb_allocation)):
                raise InvalidRequestError(
                    f"Allocation of {gb_allocation} GB is below the user's current usage"
                )

        logger.info(f"Allocation set to {gb_allocation} GB by {identity.username} [user_id={user_id}]")
        return self._get_user(user_id)

    def update_role(self, identity: Identity, user_id: str, role: Role) -> User:
        target = self._get_user(user_id)
        authorize_change_role(identity, target.role, role)

        self.user_repo.update_role(user_id, role)
        logger.info(f"Role of '{target.username}' changed to {role.value} by {identity.username}")
        return self._get_user(user_id)

    def get_storage_stats(self, identity: Identity, user_id: str) -> StorageStats:
        authorize_view_storage(identity, user_id)
        return self.ledger.stats(user_id)

    def get_my_storage_stats(self, identity: Identity) -> StorageStats:
        return self.ledger.stats(identity.user_id)

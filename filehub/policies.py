"""
Role-based authorization policies.

Each role maps to a fixed capability set. Every operation that needs more
than plain ownership goes through one policy function here, which raises
UnauthorizedAccessError on deny.
"""

from enum import Enum
from typing import Dict, FrozenSet

from common.logging_config import get_logger
from filehub.exceptions import UnauthorizedAccessError
from filehub.types import Identity, Role

logger = get_logger(__name__)


class Capability(Enum):
    ACT_ON_ANY_FILE = "act_on_any_file"
    LIST_ALL_FILES = "list_all_files"
    LIST_USERS = "list_users"
    VIEW_ANY_STORAGE = "view_any_storage"
    CREATE_CLIENT = "create_client"
    CREATE_STAFF = "create_staff"
    DELETE_CLIENT = "delete_client"
    DELETE_STAFF = "delete_staff"
    SET_CLIENT_ALLOCATION = "set_client_allocation"
    CHANGE_ROLES = "change_roles"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.MASTER: frozenset(Capability),
    Role.STAFF: frozenset({
        Capability.ACT_ON_ANY_FILE,
        Capability.LIST_ALL_FILES,
        Capability.LIST_USERS,
        Capability.VIEW_ANY_STORAGE,
        Capability.CREATE_CLIENT,
        Capability.DELETE_CLIENT,
        Capability.SET_CLIENT_ALLOCATION,
    }),
    Role.CLIENT: frozenset(),
}

_CREATE_CAPABILITY = {
    Role.CLIENT: Capability.CREATE_CLIENT,
    Role.STAFF: Capability.CREATE_STAFF,
}

_DELETE_CAPABILITY = {
    Role.CLIENT: Capability.DELETE_CLIENT,
    Role.STAFF: Capability.DELETE_STAFF,
}


def has_capability(identity: Identity, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[identity.role]


def is_elevated(identity: Identity) -> bool:
    return has_capability(identity, Capability.ACT_ON_ANY_FILE)


def _deny(identity: Identity, message: str) -> None:
    logger.warning(f"Access denied: {message} [user_id={identity.user_id}] [role={identity.role.value}]")
    raise UnauthorizedAccessError(message)


def authorize_file_access(identity: Identity, owner_id: str, file_id: str) -> None:
    """Owner, or any role that may act on files it does not own."""
    if identity.user_id == owner_id or is_elevated(identity):
        return
    _deny(identity, f"User {identity.user_id} may not access file {file_id}")


def authorize_list_users(identity: Identity) -> None:
    if not has_capability(identity, Capability.LIST_USERS):
        _deny(identity, "Listing users requires an elevated role")


def authorize_view_storage(identity: Identity, user_id: str) -> None:
    if identity.user_id == user_id or has_capability(identity, Capability.VIEW_ANY_STORAGE):
        return
    _deny(identity, f"User {identity.user_id} may not view storage of user {user_id}")


def authorize_create_user(identity: Identity, role: Role) -> None:
    capability = _CREATE_CAPABILITY.get(role)
    if capability is None or not has_capability(identity, capability):
        _deny(identity, f"Role {identity.role.value} may not create {role.value} accounts")


def authorize_delete_user(identity: Identity, target_role: Role) -> None:
    """The Master account has no delete capability mapped, so it is never deletable."""
    capability = _DELETE_CAPABILITY.get(target_role)
    if capability is None or not has_capability(identity, capability):
        _deny(identity, f"Role {identity.role.value} may not delete {target_role.value} accounts")


def authorize_set_allocation(identity: Identity, target_role: Role) -> None:
    if target_role != Role.CLIENT or not has_capability(identity, Capability.SET_CLIENT_ALLOCATION):
        _deny(identity, f"Role {identity.role.value} may not change allocation of {target_role.value} accounts")


def authorize_change_role(identity: Identity, target_role: Role, new_role: Role) -> None:
    if not has_capability(identity, Capability.CHANGE_ROLES):
        _deny(identity, "Changing roles requires the Master role")
    if target_role == Role.MASTER or new_role == Role.MASTER:
        _deny(identity, "The Master role cannot be assigned or revoked")

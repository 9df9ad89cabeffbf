"""User administration API routes."""

from fastapi import APIRouter, Depends, Response, status

from filehub.auth import get_current_identity
from filehub.repositories.user_repository import User
from filehub.schemas.common import StorageStatsResponse
from filehub.schemas.users import (
    CreateUserRequest,
    ListUsersResponse,
    UpdateAllocationRequest,
    UpdateRoleRequest,
    UserProfileResponse
)
from filehub.services.user_service import UserService
from filehub.types import Identity, StorageStats

router = APIRouter(prefix="/users", tags=["Users"])


def _profile(user: User) -> UserProfileResponse:
    return UserProfileResponse(
        user_id=user.user_id,
        username=user.username,
        role=user.role,
        quota=user.quota_bytes,
        used_bytes=user.used_bytes,
        gb_allocation=user.gb_allocation,
    )


def _stats(stats: StorageStats) -> StorageStatsResponse:
    return StorageStatsResponse(
        quota=stats.quota,
        used_bytes=stats.used_bytes,
        gb_allocation=stats.gb_allocation,
    )


@router.get("/me", response_model=UserProfileResponse)
def get_me(identity: Identity = Depends(get_current_identity)):
    return _profile(UserService().get_me(identity))


@router.get("/me/storage", response_model=StorageStatsResponse)
def get_my_storage_stats(identity: Identity = Depends(get_current_identity)):
    return _stats(UserService().get_my_storage_stats(identity))


@router.get("", response_model=ListUsersResponse)
def list_users(identity: Identity = Depends(get_current_identity)):
    """
    List every account. Master and Staff only.
    """
    users = UserService().list_users(identity)
    return ListUsersResponse(users=[_profile(user) for user in users])


@router.post("", response_model=UserProfileResponse, status_code=status.HTTP_201_CREATED)
def create_user(request: CreateUserRequest, identity: Identity = Depends(get_current_identity)):
    """
    Create an account. Master may create Staff and Client, Staff only Client.

    Raises:
        - 400: Username already exists
        - 403: Role may not create accounts of this role
    """
    user = UserService().create_user(identity, request.username, request.password, request.role)
    return _profile(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, identity: Identity = Depends(get_current_identity)):
    """
    Delete an account with all of its files. The Master account cannot be deleted.
    """
    UserService().delete_user(identity, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}/allocation", response_model=UserProfileResponse)
def update_allocation(
    user_id: str,
    request: UpdateAllocationRequest,
    identity: Identity = Depends(get_current_identity)
):
    user = UserService().update_allocation(identity, user_id, request.gb_allocation)
    return _profile(user)


@router.patch("/{user_id}/role", response_model=UserProfileResponse)
def update_role(
    user_id: str,
    request: UpdateRoleRequest,
    identity: Identity = Depends(get_current_identity)
):
    user = UserService().update_role(identity, user_id, request.role)
    return _profile(user)


@router.get("/{user_id}/storage", response_model=StorageStatsResponse)
def get_user_storage_stats(user_id: str, identity: Identity = Depends(get_current_identity)):
    return _stats(UserService().get_storage_stats(identity, user_id))

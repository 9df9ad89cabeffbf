"""Pydantic schemas for user administration endpoints."""

from typing import List

from pydantic import BaseModel, Field

from filehub.types import Role


class UserProfileResponse(BaseModel):
    """Response model for a user profile."""
    user_id: str
    username: str
    role: Role
    quota: int
    used_bytes: int
    gb_allocation: int


class ListUsersResponse(BaseModel):
    """Response model for user listing."""
    users: List[UserProfileResponse]


class CreateUserRequest(BaseModel):
    """Request model for admin user creation."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    role: Role = Role.CLIENT


class UpdateAllocationRequest(BaseModel):
    """Request model for changing a user's GB allocation."""
    gb_allocation: int


class UpdateRoleRequest(BaseModel):
    """Request model for changing a user's role."""
    role: Role

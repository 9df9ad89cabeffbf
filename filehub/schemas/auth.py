"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel, Field

from filehub.types import Role


class RegisterRequest(BaseModel):
    """Request model for user registration."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterResponse(BaseModel):
    """Response model for user registration."""
    user_id: str


class LoginRequest(BaseModel):
    """Request model for user login."""
    username: str
    password: str


class LoginResponse(BaseModel):
    """Response model for user login."""
    token: str


class SessionResponse(BaseModel):
    """Response model for session validation."""
    username: str
    role: Role

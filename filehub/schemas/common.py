"""Common schemas used across multiple endpoints."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Response model for errors."""
    detail: str
    code: str


class StorageStatsResponse(BaseModel):
    """Response model for a user's storage usage."""
    quota: int
    used_bytes: int
    gb_allocation: int

"""Authentication and security utilities."""

import secrets
from typing import Optional

import bcrypt
from fastapi import Depends, Header

from common.constants import SESSION_TOKEN_PREFIX
from filehub.exceptions import InvalidSessionError
from filehub.types import Identity


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Bcrypt hash of the password
    """
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Args:
        password: Plain text password to verify
        password_hash: Bcrypt hash to verify against

    Returns:
        True if password matches hash, False otherwise
    """
    password_bytes = password.encode('utf-8')
    hash_bytes = password_hash.encode('utf-8')
    return bcrypt.checkpw(password_bytes, hash_bytes)


def generate_session_token() -> str:
    """
    Generate a new unguessable session token with the configured prefix.
    """
    return f"{SESSION_TOKEN_PREFIX}{secrets.token_urlsafe(32)}"


def generate_share_token() -> str:
    """
    Generate a new unguessable share token.
    """
    return secrets.token_urlsafe(24)


def _extract_bearer(authorization: str) -> str:
    if not authorization.startswith("Bearer "):
        raise InvalidSessionError("Invalid authorization header format")
    return authorization[len("Bearer "):]


async def get_session_token(authorization: Optional[str] = Header(None)) -> str:
    """
    FastAPI dependency returning the bearer token from the Authorization header.

    Raises:
        InvalidSessionError: if the header is missing or not a Bearer token
    """
    if authorization is None:
        raise InvalidSessionError("Missing authorization header")
    return _extract_bearer(authorization)


async def get_optional_session_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """
    Like get_session_token, but anonymous requests (share links) are allowed.
    """
    if authorization is None:
        return None
    return _extract_bearer(authorization)


def get_current_identity(token: str = Depends(get_session_token)) -> Identity:
    """
    FastAPI dependency resolving the session token to the caller's identity.

    Raises:
        InvalidSessionError: if the token is unknown or expired
    """
    from filehub.services.auth_service import AuthService

    return AuthService().validate_session(token)

"""Authentication service: accounts, login and the session store."""

import sqlite3
from datetime import timedelta
from typing import Optional

from common.logging_config import get_logger
from filehub.auth import generate_session_token, hash_password, verify_password
from filehub.config import (
    DEFAULT_USER_GB_ALLOCATION,
    MASTER_GB_ALLOCATION,
    MASTER_PASSWORD,
    MASTER_USERNAME,
    SESSION_TTL_SECONDS,
)
from filehub.exceptions import InvalidCredentialsError, InvalidSessionError, UserAlreadyExistsError
from filehub.repositories.session_repository import SessionRepository
from filehub.repositories.user_repository import User, UserRepository
from filehub.types import Identity, Role
from filehub.utils import gb_to_bytes, generate_uuid, utcnow

logger = get_logger(__name__)


class AuthService:
    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        session_repo: Optional[SessionRepository] = None,
        session_ttl_seconds: Optional[int] = None,
    ):
        self.user_repo = user_repo or UserRepository()
        self.session_repo = session_repo or SessionRepository()
        self.session_ttl = timedelta(seconds=session_ttl_seconds or SESSION_TTL_SECONDS)

    def create_account(self, username: str, password: str, role: Role, gb_allocation: int) -> User:
        existing_user = self.user_repo.get_by_username(username)
        if existing_user is not None:
            logger.warning(f"Account creation failed: username '{username}' already exists")
            raise UserAlreadyExistsError(f"Username '{username}' already exists")

        try:
            return self.user_repo.create_user(
                user_id=generate_uuid(),
                username=username,
                password_hash=hash_password(password),
                role=role,
                gb_allocation=gb_allocation,
                quota_bytes=gb_to_bytes(gb_allocation),
                created_at=utcnow(),
            )
        except sqlite3.IntegrityError:
            raise UserAlreadyExistsError(f"Username '{username}' already exists")

    def register_user(self, username: str, password: str) -> str:
        logger.info(f"Attempting to register user: {username}")
        user = self.create_account(username, password, Role.CLIENT, DEFAULT_USER_GB_ALLOCATION)
        logger.info(f"Successfully registered user: {username} [user_id={user.user_id}]")
        return user.user_id

    def ensure_master_account(self) -> None:
        """
        Create the bootstrap Master account if no user holds that username yet.
        """
        if self.user_repo.get_by_username(MASTER_USERNAME) is not None:
            return
        try:
            user = self.create_account(MASTER_USERNAME, MASTER_PASSWORD, Role.MASTER, MASTER_GB_ALLOCATION)
            logger.info(f"Created master account '{MASTER_USERNAME}' [user_id={user.user_id}]")
        except UserAlreadyExistsError:
            logger.debug("Master account created concurrently")

    def login_user(self, username: str, password: str) -> str:
        logger.info(f"Login attempt for user: {username}")
        user = self.user_repo.get_by_username(username)
        if user is None:
            logger.warning(f"Login failed: username '{username}' not found")
            raise InvalidCredentialsError("Invalid username or password")

        if not verify_password(password, user.password_hash):
            logger.warning(f"Login failed: invalid password for username '{username}'")
            raise InvalidCredentialsError("Invalid username or password")

        token = generate_session_token()
        self.session_repo.create_session(token, user.user_id, utcnow())
        logger.info(f"Successfully logged in user: {username} [user_id={user.user_id}]")
        return token

    def logout(self, token: str) -> None:
        if self.session_repo.delete_session(token):
            logger.info("Session closed")
        else:
            logger.debug("Logout for unknown session ignored")

    def resolve(self, token: str) -> Identity:
        """
        Look up the identity behind a session token without modifying anything.

        Raises:
            InvalidSessionError: if the token is unknown, expired or its user is gone
        """
        session = self.session_repo.get_by_token(token)
        if session is None:
            logger.debug("Session lookup failed: unknown token")
            raise InvalidSessionError("Invalid or expired session")

        if utcnow() - session.last_active > self.session_ttl:
            logger.info(f"Session expired [user_id={session.user_id}]")
            raise InvalidSessionError("Invalid or expired session")

        user = self.user_repo.get_by_user_id(session.user_id)
        if user is None:
            raise InvalidSessionError("Invalid or expired session")

        return Identity(user_id=user.user_id, username=user.username, role=user.role)

    def touch(self, token: str) -> None:
        self.session_repo.touch(token, utcnow())

    def validate_session(self, token: str) -> Identity:
        identity = self.resolve(token)
        self.touch(token)
        return identity

    def purge_expired_sessions(self) -> int:
        return self.session_repo.delete_inactive_since(utcnow() - self.session_ttl)

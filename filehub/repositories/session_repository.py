"""Session repository for database operations."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from common.logging_config import get_logger
from filehub.database import connection_scope

logger = get_logger(__name__)


@dataclass
class Session:
    token: str
    user_id: str
    created_at: datetime
    last_active: datetime


class SessionRepository:
    @staticmethod
    def create_session(token: str, user_id: str, created_at: datetime, conn=None) -> Session:
        with connection_scope(conn) as conn:
            conn.execute(
                """
                INSERT INTO sessions (token, user_id, created_at, last_active)
                VALUES (?, ?, ?, ?)
                """,
                (token, user_id, created_at.isoformat(), created_at.isoformat())
            )
        logger.debug(f"Session created [user_id={user_id}]")
        return Session(token=token, user_id=user_id, created_at=created_at, last_active=created_at)

    @staticmethod
    def get_by_token(token: str) -> Optional[Session]:
        with connection_scope() as conn:
            row = conn.execute(
                "SELECT token, user_id, created_at, last_active FROM sessions WHERE token = ?",
                (token,)
            ).fetchone()

        if row is None:
            return None

        return Session(
            token=row["token"],
            user_id=row["user_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            last_active=datetime.fromisoformat(row["last_active"]),
        )

    @staticmethod
    def touch(token: str, last_active: datetime) -> None:
        with connection_scope() as conn:
            conn.execute(
                "UPDATE sessions SET last_active = ? WHERE token = ?",
                (last_active.isoformat(), token)
            )

    @staticmethod
    def delete_session(token: str) -> bool:
        with connection_scope() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
        return cursor.rowcount == 1

    @staticmethod
    def delete_inactive_since(cutoff: datetime) -> int:
        """
        Remove sessions whose last activity is older than ``cutoff``.

        Returns:
            Number of sessions removed
        """
        with connection_scope() as conn:
            cursor = conn.execute(
                "DELETE FROM sessions WHERE last_active < ?",
                (cutoff.isoformat(),)
            )
        if cursor.rowcount:
            logger.info(f"Purged {cursor.rowcount} expired sessions")
        return cursor.rowcount

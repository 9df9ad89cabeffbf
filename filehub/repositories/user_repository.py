"""User repository for database operations, including the quota columns."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from common.logging_config import get_logger
from filehub.database import connection_scope
from filehub.types import Role

logger = get_logger(__name__)

_USER_COLUMNS = """user_id, username, password_hash, role, gb_allocation, quota_bytes,
                   used_bytes, reserved_bytes, created_at"""


@dataclass
class User:
    user_id: str
    username: str
    password_hash: str
    role: Role
    gb_allocation: int
    quota_bytes: int
    used_bytes: int
    reserved_bytes: int
    created_at: datetime


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        user_id=row["user_id"],
        username=row["username"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        gb_allocation=row["gb_allocation"],
        quota_bytes=row["quota_bytes"],
        used_bytes=row["used_bytes"],
        reserved_bytes=row["reserved_bytes"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class UserRepository:
    @staticmethod
    def create_user(
        user_id: str,
        username: str,
        password_hash: str,
        role: Role,
        gb_allocation: int,
        quota_bytes: int,
        created_at: datetime,
        conn=None,
    ) -> User:
        logger.debug(f"Creating user: {username} [user_id={user_id}] [role={role.value}]")
        with connection_scope(conn) as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users (user_id, username, password_hash, role, gb_allocation,
                                       quota_bytes, used_bytes, reserved_bytes, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, 0, 0, ?)
                    """,
                    (user_id, username, password_hash, role.value, gb_allocation,
                     quota_bytes, created_at.isoformat())
                )
            except sqlite3.IntegrityError:
                logger.warning(f"Username already taken: {username}")
                raise

        logger.info(f"User created successfully: {username} [user_id={user_id}]")
        return User(
            user_id=user_id,
            username=username,
            password_hash=password_hash,
            role=role,
            gb_allocation=gb_allocation,
            quota_bytes=quota_bytes,
            used_bytes=0,
            reserved_bytes=0,
            created_at=created_at,
        )

    @staticmethod
    def get_by_user_id(user_id: str, conn=None) -> Optional[User]:
        with connection_scope(conn) as conn:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE user_id = ?",
                (user_id,)
            ).fetchone()

        if row is None:
            logger.debug(f"User not found: {user_id}")
            return None
        return _row_to_user(row)

    @staticmethod
    def get_by_username(username: str, conn=None) -> Optional[User]:
        with connection_scope(conn) as conn:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE username = ?",
                (username,)
            ).fetchone()

        if row is None:
            logger.debug(f"User not found: {username}")
            return None
        return _row_to_user(row)

    @staticmethod
    def get_all_users() -> List[User]:
        with connection_scope() as conn:
            rows = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users ORDER BY created_at, username"
            ).fetchall()

        logger.debug(f"Fetched {len(rows)} users")
        return [_row_to_user(row) for row in rows]

    @staticmethod
    def update_role(user_id: str, role: Role, conn=None) -> None:
        with connection_scope(conn) as conn:
            conn.execute("UPDATE users SET role = ? WHERE user_id = ?", (role.value, user_id))
        logger.info(f"Role updated to {role.value} [user_id={user_id}]")

    @staticmethod
    def update_allocation(user_id: str, gb_allocation: int, quota_bytes: int, conn=None) -> bool:
        """
        Change a user's allocation unless current usage would no longer fit.

        Returns:
            True if the row was updated
        """
        with connection_scope(conn) as conn:
            cursor = conn.execute(
                """
                UPDATE users SET gb_allocation = ?, quota_bytes = ?
                WHERE user_id = ? AND used_bytes + reserved_bytes <= ?
                """,
                (gb_allocation, quota_bytes, user_id, quota_bytes)
            )
        return cursor.rowcount == 1

    @staticmethod
    def try_reserve(user_id: str, size: int, conn=None) -> bool:
        """
        Atomically reserve ``size`` bytes if usage plus reservations stay within quota.
        """
        with connection_scope(conn) as conn:
            cursor = conn.execute(
                """
                UPDATE users SET reserved_bytes = reserved_bytes + ?
                WHERE user_id = ? AND used_bytes + reserved_bytes + ? <= quota_bytes
                """,
                (size, user_id, size)
            )
        return cursor.rowcount == 1

    @staticmethod
    def commit_reservation(user_id: str, size: int, conn=None) -> None:
        """Move ``size`` bytes from reserved to used."""
        with connection_scope(conn) as conn:
            conn.execute(
                """
                UPDATE users
                SET used_bytes = used_bytes + ?, reserved_bytes = MAX(0, reserved_bytes - ?)
                WHERE user_id = ?
                """,
                (size, size, user_id)
            )

    @staticmethod
    def add_used(user_id: str, size: int, conn=None) -> None:
        with connection_scope(conn) as conn:
            conn.execute(
                "UPDATE users SET used_bytes = used_bytes + ? WHERE user_id = ?",
                (size, user_id)
            )

    @staticmethod
    def release_used(user_id: str, size: int, conn=None) -> None:
        """Subtract from used bytes, floored at zero."""
        with connection_scope(conn) as conn:
            conn.execute(
                "UPDATE users SET used_bytes = MAX(0, used_bytes - ?) WHERE user_id = ?",
                (size, user_id)
            )

    @staticmethod
    def release_reserved(user_id: str, size: int, conn=None) -> None:
        with connection_scope(conn) as conn:
            conn.execute(
                "UPDATE users SET reserved_bytes = MAX(0, reserved_bytes - ?) WHERE user_id = ?",
                (size, user_id)
            )

    @staticmethod
    def delete_user(user_id: str, conn=None) -> None:
        with connection_scope(conn) as conn:
            conn.execute("DELETE FROM users WHERE user_id = ?", (user_id,))
        logger.info(f"User deleted [user_id={user_id}]")

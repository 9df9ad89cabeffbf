"""File repository for database operations."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from common.logging_config import get_logger
from filehub.database import connection_scope
from filehub.types import UploadStatus

logger = get_logger(__name__)

_FILE_COLUMNS = """file_id, owner_id, filename, mime_type, total_size, total_chunks, status,
                   created_at, last_activity_at, share_token"""


@dataclass
class File:
    file_id: str
    owner_id: str
    filename: str
    mime_type: str
    total_size: int
    total_chunks: int
    status: UploadStatus
    created_at: datetime
    last_activity_at: datetime
    share_token: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status == UploadStatus.COMPLETE


def _row_to_file(row: sqlite3.Row) -> File:
    return File(
        file_id=row["file_id"],
        owner_id=row["owner_id"],
        filename=row["filename"],
        mime_type=row["mime_type"],
        total_size=row["total_size"],
        total_chunks=row["total_chunks"],
        status=UploadStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        last_activity_at=datetime.fromisoformat(row["last_activity_at"]),
        share_token=row["share_token"],
    )


class FileRepository:
    @staticmethod
    def create_file(
        file_id: str,
        owner_id: str,
        filename: str,
        mime_type: str,
        total_size: int,
        total_chunks: int,
        created_at: datetime,
        conn=None,
    ) -> File:
        with connection_scope(conn) as conn:
            conn.execute(
                """
                INSERT INTO files (file_id, owner_id, filename, mime_type, total_size, total_chunks,
                                   status, created_at, last_activity_at, share_token)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, NULL)
                """,
                (file_id, owner_id, filename, mime_type, total_size, total_chunks,
                 UploadStatus.PENDING.value, created_at.isoformat(), created_at.isoformat())
            )

        return File(
            file_id=file_id,
            owner_id=owner_id,
            filename=filename,
            mime_type=mime_type,
            total_size=total_size,
            total_chunks=total_chunks,
            status=UploadStatus.PENDING,
            created_at=created_at,
            last_activity_at=created_at,
        )

    @staticmethod
    def get_by_id(file_id: str, conn=None) -> Optional[File]:
        with connection_scope(conn) as conn:
            row = conn.execute(
                f"SELECT {_FILE_COLUMNS} FROM files WHERE file_id = ?",
                (file_id,)
            ).fetchone()

        if row is None:
            return None
        return _row_to_file(row)

    @staticmethod
    def get_by_share_token(share_token: str, conn=None) -> Optional[File]:
        with connection_scope(conn) as conn:
            row = conn.execute(
                f"SELECT {_FILE_COLUMNS} FROM files WHERE share_token = ?",
                (share_token,)
            ).fetchone()

        if row is None:
            return None
        return _row_to_file(row)

    @staticmethod
    def list_by_owner(owner_id: str, conn=None) -> List[File]:
        with connection_scope(conn) as conn:
            rows = conn.execute(
                f"SELECT {_FILE_COLUMNS} FROM files WHERE owner_id = ? ORDER BY created_at DESC",
                (owner_id,)
            ).fetchall()
        return [_row_to_file(row) for row in rows]

    @staticmethod
    def list_all() -> List[File]:
        with connection_scope() as conn:
            rows = conn.execute(
                f"SELECT {_FILE_COLUMNS} FROM files ORDER BY created_at DESC"
            ).fetchall()
        return [_row_to_file(row) for row in rows]

    @staticmethod
    def list_stale_pending(cutoff: datetime) -> List[File]:
        """
        Pending uploads with no activity since ``cutoff``.
        """
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {_FILE_COLUMNS} FROM files
                WHERE status = ? AND last_activity_at < ?
                ORDER BY last_activity_at
                """,
                (UploadStatus.PENDING.value, cutoff.isoformat())
            ).fetchall()
        return [_row_to_file(row) for row in rows]

    @staticmethod
    def mark_complete(file_id: str, conn=None) -> bool:
        """
        Transition Pending -> Complete.

        Returns:
            True if this call performed the transition, False if the file was
            already Complete (or gone)
        """
        with connection_scope(conn) as conn:
            cursor = conn.execute(
                "UPDATE files SET status = ? WHERE file_id = ? AND status = ?",
                (UploadStatus.COMPLETE.value, file_id, UploadStatus.PENDING.value)
            )
        return cursor.rowcount == 1

    @staticmethod
    def touch(file_id: str, last_activity_at: datetime, conn=None) -> None:
        with connection_scope(conn) as conn:
            conn.execute(
                "UPDATE files SET last_activity_at = ? WHERE file_id = ?",
                (last_activity_at.isoformat(), file_id)
            )

    @staticmethod
    def set_share_token(file_id: str, share_token: str, conn=None) -> None:
        with connection_scope(conn) as conn:
            conn.execute(
                "UPDATE files SET share_token = ? WHERE file_id = ?",
                (share_token, file_id)
            )
        logger.info(f"Share token bound [file_id={file_id}]")

    @staticmethod
    def delete_file(file_id: str, conn=None) -> bool:
        with connection_scope(conn) as conn:
            cursor = conn.execute("DELETE FROM files WHERE file_id = ?", (file_id,))
        return cursor.rowcount == 1

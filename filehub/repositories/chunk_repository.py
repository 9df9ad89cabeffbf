"""Chunk repository: blobs keyed by (file_id, chunk_index)."""

import hashlib
from dataclasses import dataclass
from typing import Iterator, Optional, Set

from common.logging_config import get_logger
from filehub.database import connection_scope
from filehub.exceptions import ChunkChecksumMismatchError, MissingChunkError, NoChunksFoundError
from filehub.utils import get_current_timestamp

logger = get_logger(__name__)


def compute_checksum(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def verify_checksum(data: bytes, expected_checksum: str) -> bool:
    return compute_checksum(data) == expected_checksum


@dataclass
class Chunk:
    file_id: str
    chunk_index: int
    data: bytes
    size: int
    checksum: str


class ChunkRepository:
    @staticmethod
    def put(file_id: str, chunk_index: int, data: bytes, conn=None) -> Chunk:
        """
        Insert or overwrite one chunk. The last writer for an index wins.
        """
        checksum = compute_checksum(data)
        with connection_scope(conn) as conn:
            conn.execute(
                """
                INSERT INTO chunks (file_id, chunk_index, data, size, checksum, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(file_id, chunk_index) DO UPDATE SET
                    data = excluded.data,
                    size = excluded.size,
                    checksum = excluded.checksum,
                    updated_at = excluded.updated_at
                """,
                (file_id, chunk_index, data, len(data), checksum, get_current_timestamp())
            )
        logger.debug(f"Stored chunk {chunk_index} ({len(data)} bytes) [file_id={file_id}]")
        return Chunk(
            file_id=file_id,
            chunk_index=chunk_index,
            data=data,
            size=len(data),
            checksum=checksum,
        )

    @staticmethod
    def get(file_id: str, chunk_index: int, conn=None) -> Optional[Chunk]:
        """
        Fetch one chunk, verifying its payload against the stored checksum.

        Raises:
            ChunkChecksumMismatchError: if the stored bytes were corrupted
        """
        with connection_scope(conn) as conn:
            row = conn.execute(
                """
                SELECT file_id, chunk_index, data, size, checksum
                FROM chunks WHERE file_id = ? AND chunk_index = ?
                """,
                (file_id, chunk_index)
            ).fetchone()

        if row is None:
            return None

        data = bytes(row["data"])
        if not verify_checksum(data, row["checksum"]):
            logger.error(f"Checksum mismatch on chunk {chunk_index} [file_id={file_id}]")
            raise ChunkChecksumMismatchError(file_id, chunk_index)

        return Chunk(
            file_id=row["file_id"],
            chunk_index=row["chunk_index"],
            data=data,
            size=row["size"],
            checksum=row["checksum"],
        )

    @staticmethod
    def present_indices(file_id: str, total_chunks: int, conn=None) -> Set[int]:
        with connection_scope(conn) as conn:
            rows = conn.execute(
                "SELECT chunk_index FROM chunks WHERE file_id = ?",
                (file_id,)
            ).fetchall()
        return {row["chunk_index"] for row in rows if 0 <= row["chunk_index"] < total_chunks}

    @staticmethod
    def count(file_id: str, total_chunks: int, conn=None) -> int:
        """
        Number of indices in [0, total_chunks) currently stored.

        Always a fresh scan, so a retransmitted index is counted once.
        """
        return len(ChunkRepository.present_indices(file_id, total_chunks, conn=conn))

    @staticmethod
    def stored_bytes(file_id: str, total_chunks: int, conn=None) -> int:
        """
        Total payload size of the chunks stored at indices [0, total_chunks).
        """
        with connection_scope(conn) as conn:
            row = conn.execute(
                """
                SELECT COALESCE(SUM(size), 0) AS total FROM chunks
                WHERE file_id = ? AND chunk_index >= 0 AND chunk_index < ?
                """,
                (file_id, total_chunks)
            ).fetchone()
        return row["total"]

    @staticmethod
    def first_missing(file_id: str, total_chunks: int, conn=None) -> Optional[int]:
        present = ChunkRepository.present_indices(file_id, total_chunks, conn=conn)
        for chunk_index in range(total_chunks):
            if chunk_index not in present:
                return chunk_index
        return None

    @staticmethod
    def delete_all(file_id: str, conn=None) -> int:
        """
        Remove every chunk of a file. Absent indices are not an error.

        Returns:
            Number of chunks removed
        """
        with connection_scope(conn) as conn:
            cursor = conn.execute("DELETE FROM chunks WHERE file_id = ?", (file_id,))
        logger.debug(f"Deleted {cursor.rowcount} chunks [file_id={file_id}]")
        return cursor.rowcount

    @staticmethod
    def iter_chunks(file_id: str, total_chunks: int) -> Iterator[bytes]:
        """
        Yield chunk payloads in index order, one database read per chunk.

        Raises:
            MissingChunkError: at the first absent index
        """
        for chunk_index in range(total_chunks):
            chunk = ChunkRepository.get(file_id, chunk_index)
            if chunk is None:
                logger.error(f"Chunk {chunk_index} missing during read [file_id={file_id}]")
                raise MissingChunkError(file_id, chunk_index)
            yield chunk.data

    @staticmethod
    def assemble(file_id: str, total_chunks: int) -> bytes:
        """
        Concatenate chunks 0..total_chunks-1 in index order.

        Raises:
            MissingChunkError: naming the first absent index
            NoChunksFoundError: if there is nothing to assemble
        """
        if total_chunks <= 0:
            raise NoChunksFoundError(f"File {file_id} has no chunks")

        data = b"".join(ChunkRepository.iter_chunks(file_id, total_chunks))
        if not data:
            raise NoChunksFoundError(f"File {file_id} has no data")
        return data

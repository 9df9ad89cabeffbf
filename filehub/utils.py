"""Utility helper functions for FileHub."""

import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from common.constants import BYTES_PER_GB, SHARE_LINK_SEPARATOR


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """
    Current time as an aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def get_current_timestamp() -> str:
    """
    Get current timestamp in ISO format.

    Returns:
        Current timestamp as ISO format string
    """
    return utcnow().isoformat()


def gb_to_bytes(gb_allocation: int) -> int:
    return gb_allocation * BYTES_PER_GB


def format_share_link(file_id: str, share_token: str) -> str:
    """
    Build the external share link form ``{file_id}_{share_token}``.
    """
    return f"{file_id}{SHARE_LINK_SEPARATOR}{share_token}"


def parse_share_link(link: str) -> Optional[Tuple[str, str]]:
    """
    Split a share link into (file_id, share_token).

    Splits on the first separator only; the token itself may contain
    underscores.

    Returns:
        Tuple of file_id and share token, or None if the link is malformed
    """
    file_id, separator, share_token = link.partition(SHARE_LINK_SEPARATOR)
    if not separator or not file_id or not share_token:
        return None
    return file_id, share_token

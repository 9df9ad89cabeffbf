"""Project-wide constants (chunk size, storage units, roles defaults)."""

CHUNK_SIZE_BYTES: int = 2 * 1024 * 1024  # 2 MiB client-side chunk convention

BYTES_PER_GB: int = 1_000_000_000

DEFAULT_GB_ALLOCATION: int = 5

SESSION_TOKEN_PREFIX: str = "fh_"

SHARE_LINK_SEPARATOR: str = "_"

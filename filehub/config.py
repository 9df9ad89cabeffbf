"""Configuration settings for the FileHub server."""

import os
from common.constants import DEFAULT_GB_ALLOCATION


DATABASE_PATH = os.environ.get("FILEHUB_DATABASE_PATH", "/app/data/filehub.db")

FILEHUB_HOST = os.environ.get("FILEHUB_HOST", "0.0.0.0")

FILEHUB_PORT = int(os.environ.get("FILEHUB_PORT", "8000"))

SESSION_TTL_SECONDS = int(os.environ.get("FILEHUB_SESSION_TTL_SECONDS", str(24 * 3600)))

UPLOAD_EXPIRY_SECONDS = int(os.environ.get("FILEHUB_UPLOAD_EXPIRY_SECONDS", str(24 * 3600)))

CLEANUP_INTERVAL_SECONDS = int(os.environ.get("FILEHUB_CLEANUP_INTERVAL_SECONDS", "900"))

# "reserve" holds declared sizes at init; "check" only compares at init.
QUOTA_MODE = os.environ.get("FILEHUB_QUOTA_MODE", "reserve")

MASTER_USERNAME = os.environ.get("FILEHUB_MASTER_USERNAME", "master")

MASTER_PASSWORD = os.environ.get("FILEHUB_MASTER_PASSWORD", "change-me")

MASTER_GB_ALLOCATION = int(os.environ.get("FILEHUB_MASTER_GB_ALLOCATION", "100"))

DEFAULT_USER_GB_ALLOCATION = int(
    os.environ.get("FILEHUB_DEFAULT_GB_ALLOCATION", str(DEFAULT_GB_ALLOCATION))
)

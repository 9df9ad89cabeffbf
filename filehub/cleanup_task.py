"""Background task reclaiming abandoned uploads and expired sessions."""

import asyncio
from datetime import timedelta
from typing import Dict, Optional

from starlette.concurrency import run_in_threadpool

from common.logging_config import get_logger
from filehub.config import CLEANUP_INTERVAL_SECONDS, UPLOAD_EXPIRY_SECONDS
from filehub.services.auth_service import AuthService
from filehub.services.file_registry import FileRegistry
from filehub.utils import utcnow

logger = get_logger(__name__)


class AbandonedUploadCleaner:
    """
    Background task that periodically deletes Pending uploads idle for longer
    than the upload expiry, releasing their chunks and quota reservations.
    """

    def __init__(
        self,
        interval_seconds: int = CLEANUP_INTERVAL_SECONDS,
        upload_expiry_seconds: int = UPLOAD_EXPIRY_SECONDS,
        registry: Optional[FileRegistry] = None,
        auth_service: Optional[AuthService] = None,
    ):
        """
        Initialize cleaner task.

        Args:
            interval_seconds: Time between sweeps
            upload_expiry_seconds: Idle time after which a Pending upload is abandoned
        """
        self.interval_seconds = interval_seconds
        self.upload_expiry = timedelta(seconds=upload_expiry_seconds)
        self.registry = registry or FileRegistry()
        self.auth_service = auth_service or AuthService()
        self._running = False
        self._task = None

    async def start(self) -> None:
        """Start the background cleanup task."""
        if self._running:
            logger.warning("Cleanup task already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started abandoned upload cleanup task (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background cleanup task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Stopped abandoned upload cleanup task")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await run_in_threadpool(self.sweep_once)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cleanup task: {e}", exc_info=True)

    def sweep_once(self) -> Dict[str, int]:
        """
        Execute one cleanup cycle.

        Returns:
            Counts of removed uploads and sessions
        """
        cutoff = utcnow() - self.upload_expiry
        removed_files = self.registry.sweep_abandoned(cutoff)
        removed_sessions = self.auth_service.purge_expired_sessions()

        if removed_files or removed_sessions:
            logger.info(
                f"Cleanup cycle complete: {len(removed_files)} abandoned uploads, "
                f"{removed_sessions} expired sessions removed"
            )
        else:
            logger.debug("Cleanup cycle complete: nothing to remove")

        return {"uploads": len(removed_files), "sessions": removed_sessions}

"""Session cleanup on disconnect and periodic idle sweeps."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from app.config.settings import settings
from app.services.artifacts import ArtifactStore
from app.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Reclaim artifacts and registry entries of finished sessions."""

    def __init__(
        self,
        registry: SessionRegistry,
        artifacts: ArtifactStore,
        *,
        interval_seconds: float | None = None,
        idle_threshold_seconds: float | None = None,
    ) -> None:
        self._registry = registry
        self._artifacts = artifacts
        self._interval = (
            settings.session.sweep_interval_seconds
            if interval_seconds is None
            else interval_seconds
        )
        self._idle_threshold = (
            settings.session.idle_threshold_seconds
            if idle_threshold_seconds is None
            else idle_threshold_seconds
        )
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def cleanup_session(self, session_id: str) -> None:
        """Delete the session's artifacts, then drop it from the registry."""

        try:
            removed = await self._artifacts.purge_session(session_id)
            if removed:
                logger.info("Removed %d artifact(s) for session %s", removed, session_id)
        except Exception:
            logger.exception("Artifact cleanup failed for session %s", session_id)

        try:
            await self._registry.close(session_id)
        except Exception:
            logger.exception("Registry cleanup failed for session %s", session_id)

    async def run_once(self) -> list[str]:
        """Run a single idle sweep and return the expired session ids."""

        try:
            expired = await self._registry.sweep(self._idle_threshold)
        except Exception:
            logger.exception("Idle sweep failed")
            return []

        for session_id in expired:
            logger.info("Cleaning up stale session: %s", session_id)
            await self.cleanup_session(session_id)
        return expired

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="session-idle-sweep")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()


__all__ = ["CleanupScheduler"]

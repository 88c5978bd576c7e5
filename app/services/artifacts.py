"""Ephemeral on-disk staging for synthesized audio artifacts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings

logger = logging.getLogger("app.services.voice_pipeline")


class ArtifactError(RuntimeError):
    """Raised when staging or deleting an artifact fails."""


@dataclass(frozen=True)
class StagedArtifact:
    """Handle to one staged file; the name is unique per request."""

    session_id: str
    request_id: str
    kind: str
    path: Path


class ArtifactStore:
    """Write, read and reclaim per-request files under one directory."""

    def __init__(self, root: str | Path | None = None) -> None:
        self._root = Path(root or settings.audio.temp_dir)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, session_id: str, request_id: str, kind: str, extension: str) -> Path:
        return self._root / f"{kind}-{session_id}-{request_id}.{extension.lstrip('.')}"

    async def stage(
        self,
        session_id: str,
        data: bytes,
        *,
        kind: str,
        extension: str,
        request_id: str | None = None,
    ) -> StagedArtifact:
        """Persist ``data`` under a fresh session-scoped handle."""

        if not data:
            raise ArtifactError("Artifact payload was empty.")
        request_id = request_id or uuid4().hex
        path = self.path_for(session_id, request_id, kind, extension)
        try:
            await run_in_threadpool(path.write_bytes, data)
        except OSError as exc:
            raise ArtifactError(f"Failed to stage {path.name}: {exc}") from exc
        logger.info("Audio content written to file: %s", path.name)
        return StagedArtifact(session_id=session_id, request_id=request_id, kind=kind, path=path)

    async def read(self, artifact: StagedArtifact) -> bytes:
        try:
            return await run_in_threadpool(artifact.path.read_bytes)
        except OSError as exc:
            raise ArtifactError(f"Failed to read {artifact.path.name}: {exc}") from exc

    async def delete(self, artifact: StagedArtifact) -> None:
        """Remove the staged file; a missing file is not an error."""

        try:
            await run_in_threadpool(artifact.path.unlink, missing_ok=True)
        except OSError as exc:
            raise ArtifactError(f"Failed to delete {artifact.path.name}: {exc}") from exc

    async def discard(self, artifact: StagedArtifact) -> bool:
        """Best-effort delete that logs instead of raising."""

        try:
            await self.delete(artifact)
        except ArtifactError:
            logger.exception("Could not delete artifact %s", artifact.path.name)
            return False
        return True

    async def purge_session(self, session_id: str) -> int:
        """Delete every artifact staged for ``session_id``; never raises."""

        return await run_in_threadpool(self._purge_session_sync, session_id)

    def _purge_session_sync(self, session_id: str) -> int:
        removed = 0
        try:
            candidates = list(self._root.glob(f"*-{session_id}-*"))
        except OSError:
            logger.exception("Could not list artifacts for session %s", session_id)
            return 0
        for path in candidates:
            try:
                path.unlink(missing_ok=True)
                removed += 1
            except OSError:
                logger.exception("Could not delete artifact %s", path.name)
        return removed


__all__ = ["ArtifactError", "ArtifactStore", "StagedArtifact"]

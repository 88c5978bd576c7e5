"""TTS synthesis stage of the voice pipeline."""

from __future__ import annotations

import contextlib
import logging
import time
from typing import AsyncIterator
from uuid import uuid4

from app.pipelines.voice.types import ResponseArtifact, SpeechSynthesizer
from app.services.artifacts import ArtifactStore
from app.services.speech import VoiceConfig
from app.telemetry import observe_stage

logger = logging.getLogger("app.services.voice_pipeline")


class ResponseSynthesizer:
    """Synthesize text, stage the audio, hand it over, then delete the file."""

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        artifacts: ArtifactStore,
        *,
        voice: VoiceConfig | None = None,
    ) -> None:
        self._synthesizer = synthesizer
        self._artifacts = artifacts
        self._voice = voice or VoiceConfig()

    @property
    def voice(self) -> VoiceConfig:
        return self._voice

    @contextlib.asynccontextmanager
    async def staged(
        self,
        session_id: str,
        text: str,
        *,
        kind: str = "response",
        request_id: str | None = None,
    ) -> AsyncIterator[ResponseArtifact]:
        """Yield the staged artifact; its file is removed once the block exits.

        Entering raises ``SpeechSynthesisError`` or ``ArtifactError``.
        """

        request_id = request_id or uuid4().hex
        started = time.perf_counter()
        try:
            audio = await self._synthesizer.synthesize(text, self._voice)
        except Exception:
            observe_stage("synthesize", time.perf_counter() - started, failed=True)
            raise
        observe_stage("synthesize", time.perf_counter() - started)

        staged = await self._artifacts.stage(
            session_id,
            audio,
            kind=kind,
            extension=self._voice.extension,
            request_id=request_id,
        )
        try:
            delivered = await self._artifacts.read(staged)
            yield ResponseArtifact(
                session_id=session_id,
                request_id=request_id,
                kind=kind,
                audio=delivered,
                media_type=self._voice.media_type,
                path=staged.path,
            )
        finally:
            # Deletion failures are logged by the store and never surface here.
            await self._artifacts.discard(staged)

    async def synthesize(
        self,
        session_id: str,
        text: str,
        *,
        kind: str = "response",
        request_id: str | None = None,
    ) -> ResponseArtifact:
        """Return the audio bytes after the staged file is already gone."""

        async with self.staged(session_id, text, kind=kind, request_id=request_id) as artifact:
            return artifact


__all__ = ["ResponseSynthesizer"]

"""Transcode-and-recognize stage of the voice pipeline."""

from __future__ import annotations

import logging
import time

from app.config.settings import settings
from app.pipelines.voice.types import AudioJob, Recognizer, TranscriptResult
from app.services.transcoder import AudioTranscoder, pcm_level_dbfs
from app.telemetry import observe_stage

logger = logging.getLogger("app.services.voice_pipeline")


class TranscriptionStage:
    """Turn one compressed clip into a transcript."""

    def __init__(
        self,
        transcoder: AudioTranscoder,
        recognizer: Recognizer,
        *,
        language_code: str | None = None,
        silence_threshold_dbfs: float | None = None,
    ) -> None:
        self._transcoder = transcoder
        self._recognizer = recognizer
        self._language_code = (
            settings.transcribe.language_code if language_code is None else language_code
        )
        self._silence_threshold = (
            settings.audio.silence_threshold_dbfs
            if silence_threshold_dbfs is None
            else silence_threshold_dbfs
        )

    async def convert(self, job: AudioJob) -> bytes:
        """Raises ``TranscodeError`` on malformed input."""

        started = time.perf_counter()
        try:
            pcm = await self._transcoder.transcode(job)
        except Exception:
            observe_stage("transcode", time.perf_counter() - started, failed=True)
            raise
        observe_stage("transcode", time.perf_counter() - started)
        return pcm

    async def recognize(self, session_id: str, job: AudioJob, pcm: bytes) -> TranscriptResult:
        """Raises ``TranscriptionError`` when the recognizer fails."""

        if not pcm:
            return TranscriptResult(session_id=session_id, request_id=job.request_id, text="")

        level = pcm_level_dbfs(pcm)
        if level < self._silence_threshold:
            logger.info(
                "Silent clip session=%s request=%s level=%.1f dBFS; skipping recognizer",
                session_id,
                job.request_id,
                level,
            )
            return TranscriptResult(session_id=session_id, request_id=job.request_id, text="")

        started = time.perf_counter()
        try:
            text = await self._recognizer.recognize(pcm, job.sample_rate, self._language_code)
        except Exception:
            observe_stage("recognize", time.perf_counter() - started, failed=True)
            raise
        observe_stage("recognize", time.perf_counter() - started)

        text = (text or "").strip()
        logger.info("Transcription for session %s: %s", session_id, text)
        return TranscriptResult(session_id=session_id, request_id=job.request_id, text=text)


__all__ = ["TranscriptionStage"]

"""Per-session orchestration of greeting and audio requests.

The websocket controller owns transport concerns (framing, task scheduling,
interrupts); this module owns everything between an admitted request and the
events emitted back to the caller:

1. admission through the rate governor,
2. transcode + recognize,
3. transcript routing,
4. response synthesis and delivery,
5. release of the in-flight marker and cleanup hooks.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Protocol

from app.pipelines.voice.greeting import build_greeting
from app.pipelines.voice.routing import TranscriptRouter
from app.pipelines.voice.synthesis import ResponseSynthesizer
from app.pipelines.voice.transcription import TranscriptionStage
from app.pipelines.voice.types import AudioJob
from app.services.artifacts import ArtifactError
from app.services.cleanup import CleanupScheduler
from app.services.rate_governor import (
    AdmissionError,
    RateLimitExceededError,
    SessionLimitExceededError,
    SessionRateGovernor,
    TooManyRequestsError,
)
from app.services.session_registry import (
    SessionRegistry,
    SessionSnapshot,
    UnknownSessionError,
)
from app.services.speech import SpeechSynthesisError
from app.services.transcoder import TranscodeError
from app.services.transcribe import TranscriptionError
from app.telemetry import observe_rejection, set_active_sessions

logger = logging.getLogger("app.services.voice_pipeline")
transcript_logger = logging.getLogger("app.logs.transcript")

MSG_INVALID_SESSION = "Invalid session"
MSG_CONVERSION = "Error converting audio"
MSG_RECOGNITION = "Error during speech recognition"
MSG_GENERATION = "Error generating AI response"
MSG_TTS = "Error generating TTS for response"
MSG_GREETING = "Error generating greeting"
MSG_GENERIC = "An error occurred while processing your request"

_REJECTION_REASONS: dict[type[AdmissionError], str] = {
    RateLimitExceededError: "ip_rate_limit",
    SessionLimitExceededError: "session_limit",
    TooManyRequestsError: "cooldown",
}


class EventSink(Protocol):
    async def emit(self, event: str, data: Any) -> None: ...


class VoiceOrchestrator:
    """Run the voice pipeline for sessions held in the registry."""

    def __init__(
        self,
        *,
        registry: SessionRegistry,
        governor: SessionRateGovernor,
        transcription: TranscriptionStage,
        router: TranscriptRouter,
        synthesizer: ResponseSynthesizer,
        cleanup: CleanupScheduler,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._registry = registry
        self._governor = governor
        self._transcription = transcription
        self._router = router
        self._synthesizer = synthesizer
        self._cleanup = cleanup
        self._now = now or datetime.now

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def governor(self) -> SessionRateGovernor:
        return self._governor

    @property
    def cleanup(self) -> CleanupScheduler:
        return self._cleanup

    async def connect(self, session_id: str, *, client_ip: str | None = None) -> SessionSnapshot:
        session = await self._registry.open(session_id, client_ip=client_ip)
        set_active_sessions(len(self._registry))
        logger.info("User connected with session ID: %s ip=%s", session_id, client_ip)
        return session

    async def disconnect(self, session_id: str) -> None:
        """Clean up the session; safe to call more than once."""

        logger.info("User disconnected: %s", session_id)
        await self._cleanup.cleanup_session(session_id)
        set_active_sessions(len(self._registry))

    async def admit(self, session_id: str, client_ip: str | None, sink: EventSink) -> bool:
        """Apply admission checks; on success the request is counted and in flight."""

        try:
            session = await self._governor.admit(session_id, client_ip)
        except AdmissionError as exc:
            reason = _REJECTION_REASONS.get(type(exc), "other")
            observe_rejection(reason)
            logger.info("Rejected request session=%s reason=%s", session_id, reason)
            await sink.emit("error", str(exc))
            return False
        except UnknownSessionError:
            logger.warning("Audio received for unknown session %s", session_id)
            await sink.emit("error", MSG_INVALID_SESSION)
            return False

        logger.info(
            "Admitted request session=%s count=%d",
            session_id,
            session.request_count,
        )
        return True

    async def handle_audio(self, session_id: str, audio: bytes, sink: EventSink) -> None:
        """Run an admitted request end to end, releasing it when done."""

        job = AudioJob(data=audio)
        logger.info(
            "Received audio buffer size for session %s request=%s: %d",
            session_id,
            job.request_id,
            len(audio),
        )
        try:
            await self._run_pipeline(session_id, job, sink)
        except UnknownSessionError:
            logger.warning("Session %s vanished mid-request %s", session_id, job.request_id)
            await sink.emit("error", MSG_INVALID_SESSION)
        except Exception:
            logger.exception(
                "Error in voice pipeline for session %s request=%s",
                session_id,
                job.request_id,
            )
            await sink.emit("error", MSG_GENERIC)
        finally:
            await self._registry.release(session_id)

    async def _run_pipeline(self, session_id: str, job: AudioJob, sink: EventSink) -> None:
        try:
            pcm = await self._transcription.convert(job)
        except TranscodeError:
            logger.exception("Error converting audio for session %s", session_id)
            await sink.emit("error", MSG_CONVERSION)
            return

        try:
            transcript = await self._transcription.recognize(session_id, job, pcm)
        except TranscriptionError:
            logger.exception("Error during speech recognition for session %s", session_id)
            await sink.emit("error", MSG_RECOGNITION)
            return

        await self._registry.get(session_id)
        transcript_logger.info("user | session=%s | text=%s", session_id, transcript.text)
        await sink.emit("transcription", transcript.text)
        if transcript.is_empty:
            return

        routed = await self._router.route(transcript.text)
        if routed.error is not None:
            await sink.emit("error", MSG_GENERATION)
        transcript_logger.info(
            "assistant | session=%s | handler=%s | text=%s",
            session_id,
            routed.handler,
            routed.text,
        )
        await sink.emit("gptResponse", routed.text)

        try:
            async with self._synthesizer.staged(
                session_id,
                routed.text,
                kind="response",
                request_id=job.request_id,
            ) as artifact:
                await sink.emit("gpt", artifact.audio)
        except (SpeechSynthesisError, ArtifactError):
            logger.exception("Error generating TTS for response session=%s", session_id)
            await sink.emit("error", MSG_TTS)

    async def handle_greeting(self, session_id: str, display_name: str, sink: EventSink) -> None:
        try:
            await self._registry.get(session_id)
        except UnknownSessionError:
            await sink.emit("error", MSG_INVALID_SESSION)
            return

        text = build_greeting(display_name, moment=self._now())
        try:
            async with self._synthesizer.staged(session_id, text, kind="greeting") as artifact:
                await sink.emit("greeting", artifact.audio)
        except Exception:
            logger.exception("Error generating greeting for session %s", session_id)
            await sink.emit("error", MSG_GREETING)


__all__ = [
    "EventSink",
    "VoiceOrchestrator",
    "MSG_CONVERSION",
    "MSG_GENERATION",
    "MSG_GENERIC",
    "MSG_GREETING",
    "MSG_INVALID_SESSION",
    "MSG_RECOGNITION",
    "MSG_TTS",
]

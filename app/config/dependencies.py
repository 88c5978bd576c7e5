"""Wiring of the voice orchestrator and its AWS-backed collaborators."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from app.pipelines.voice import (
    Recognizer,
    ResponseSynthesizer,
    SpeechSynthesizer,
    SystemStats,
    TextGenerator,
    TranscriptionStage,
    TranscriptRouter,
    VoiceOrchestrator,
)
from app.services.artifacts import ArtifactStore
from app.services.cleanup import CleanupScheduler
from app.services.jokes import JokeBook
from app.services.llm_client import BedrockLlmClient
from app.services.rate_governor import (
    FixedWindowRateLimiter,
    SessionRateGovernor,
    build_ip_rate_limiter,
)
from app.services.session_registry import SessionRegistry
from app.services.speech import PollySpeechService
from app.services.system_stats import PsutilSystemStats
from app.services.transcoder import AudioTranscoder
from app.services.transcribe import TranscribeService

from .settings import settings


def build_orchestrator(
    *,
    recognizer: Recognizer | None = None,
    speech: SpeechSynthesizer | None = None,
    generator: TextGenerator | None = None,
    system_stats: SystemStats | None = None,
    transcoder: AudioTranscoder | None = None,
    artifacts: ArtifactStore | None = None,
    registry: SessionRegistry | None = None,
    ip_limiter: FixedWindowRateLimiter | None = None,
    jokes: JokeBook | None = None,
    now: Callable[[], datetime] | None = None,
) -> VoiceOrchestrator:
    """Assemble the orchestrator; any collaborator can be swapped for a stub."""

    # Collaborators may be falsy (the registry defines __len__), so compare with None.
    if registry is None:
        registry = SessionRegistry()
    if artifacts is None:
        artifacts = ArtifactStore(settings.audio.temp_dir)
    if ip_limiter is None:
        ip_limiter = build_ip_rate_limiter()
    governor = SessionRateGovernor(registry, ip_limiter)

    transcription = TranscriptionStage(
        AudioTranscoder() if transcoder is None else transcoder,
        TranscribeService(region=settings.aws.region) if recognizer is None else recognizer,
    )
    router = TranscriptRouter(
        BedrockLlmClient() if generator is None else generator,
        PsutilSystemStats() if system_stats is None else system_stats,
        JokeBook() if jokes is None else jokes,
    )
    synthesizer = ResponseSynthesizer(
        PollySpeechService() if speech is None else speech,
        artifacts,
    )
    cleanup = CleanupScheduler(registry, artifacts)

    return VoiceOrchestrator(
        registry=registry,
        governor=governor,
        transcription=transcription,
        router=router,
        synthesizer=synthesizer,
        cleanup=cleanup,
        now=now,
    )


__all__ = ["build_orchestrator"]

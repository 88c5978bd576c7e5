"""Service layer helpers for external integrations and session state."""

from .artifacts import ArtifactError, ArtifactStore, StagedArtifact
from .cleanup import CleanupScheduler
from .jokes import JokeBook
from .llm_client import BedrockLlmClient, LlmInvocationError
from .rate_governor import (
    AdmissionError,
    FixedWindowRateLimiter,
    RateLimitExceededError,
    SessionLimitExceededError,
    SessionRateGovernor,
    TooManyRequestsError,
)
from .session_registry import (
    DuplicateSessionError,
    SessionRegistry,
    SessionSnapshot,
    UnknownSessionError,
)
from .speech import PollySpeechService, SpeechSynthesisError, VoiceConfig
from .system_stats import PsutilSystemStats
from .transcoder import AudioJob, AudioTranscoder, TranscodeError
from .transcribe import TranscribeService, TranscriptionError, TranscriptionResult

__all__ = [
    "AdmissionError",
    "ArtifactError",
    "ArtifactStore",
    "AudioJob",
    "AudioTranscoder",
    "BedrockLlmClient",
    "CleanupScheduler",
    "DuplicateSessionError",
    "FixedWindowRateLimiter",
    "JokeBook",
    "LlmInvocationError",
    "PollySpeechService",
    "PsutilSystemStats",
    "RateLimitExceededError",
    "SessionLimitExceededError",
    "SessionRateGovernor",
    "SessionRegistry",
    "SessionSnapshot",
    "SpeechSynthesisError",
    "StagedArtifact",
    "TooManyRequestsError",
    "TranscodeError",
    "TranscribeService",
    "TranscriptionError",
    "TranscriptionResult",
    "UnknownSessionError",
    "VoiceConfig",
]

"""Typed containers and collaborator contracts shared across the voice pipeline.

These live in their own module so the stages (`transcription`, `routing`,
`synthesis`, `greeting`) and the orchestrator can import them without
creating circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from app.services.speech import VoiceConfig
from app.services.transcoder import AudioJob


class Recognizer(Protocol):
    async def recognize(self, pcm: bytes, sample_rate: int, language_code: str) -> str: ...


class SpeechSynthesizer(Protocol):
    async def synthesize(self, text: str, voice: VoiceConfig) -> bytes: ...


class TextGenerator(Protocol):
    async def generate(self, system_prompt: str, user_text: str) -> str: ...


class SystemStats(Protocol):
    async def cpu_percent(self) -> float: ...


@dataclass(frozen=True)
class TranscriptResult:
    """Recognized text for one request; empty text ends the pipeline."""

    session_id: str
    request_id: str
    text: str

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class RoutedResponse:
    """Reply text plus the handler that produced it."""

    text: str
    handler: str
    error: Exception | None = None


@dataclass(frozen=True)
class ResponseArtifact:
    """Synthesized audio handed to the caller plus the staged file it came from."""

    session_id: str
    request_id: str
    kind: str
    audio: bytes
    media_type: str
    path: Path | None = None


__all__ = [
    "AudioJob",
    "Recognizer",
    "ResponseArtifact",
    "RoutedResponse",
    "SpeechSynthesizer",
    "SystemStats",
    "TextGenerator",
    "TranscriptResult",
    "VoiceConfig",
]

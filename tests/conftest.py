"""Shared stubs for the voice pipeline tests."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config.dependencies import build_orchestrator  # noqa: E402
from app.services.artifacts import ArtifactStore  # noqa: E402
from app.services.jokes import JokeBook  # noqa: E402
from app.services.rate_governor import FixedWindowRateLimiter  # noqa: E402
from app.services.session_registry import SessionRegistry  # noqa: E402

# 0.1 s of a constant, clearly audible 16-bit tone at 48 kHz.
LOUD_PCM = (8000).to_bytes(2, "little", signed=True) * 4800
SILENT_PCM = b"\x00\x00" * 4800


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTranscoder:
    def __init__(self, pcm: bytes = LOUD_PCM, error: Exception | None = None) -> None:
        self.pcm = pcm
        self.error = error
        self.jobs: list[Any] = []

    async def transcode(self, job) -> bytes:
        self.jobs.append(job)
        if self.error is not None:
            raise self.error
        return self.pcm


class StubRecognizer:
    def __init__(self, transcript: str = "hello there", error: Exception | None = None) -> None:
        self.transcript = transcript
        self.error = error
        self.calls: list[tuple[int, int, str]] = []

    async def recognize(self, pcm: bytes, sample_rate: int, language_code: str) -> str:
        self.calls.append((len(pcm), sample_rate, language_code))
        if self.error is not None:
            raise self.error
        return self.transcript


class StubSpeech:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.texts: list[str] = []

    async def synthesize(self, text: str, voice) -> bytes:
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return b"ID3" + text.encode("utf-8")


class StubGenerator:
    def __init__(self, reply: str = "Hi! How can I help?", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def generate(self, system_prompt: str, user_text: str) -> str:
        self.calls.append((system_prompt, user_text))
        if self.error is not None:
            raise self.error
        return self.reply


class StubStats:
    def __init__(self, value: float = 42.5) -> None:
        self.value = value

    async def cpu_percent(self) -> float:
        return self.value


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    async def emit(self, event: str, data: Any = None) -> None:
        self.events.append((event, data))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payload(self, event: str) -> Any:
        for name, data in self.events:
            if name == event:
                return data
        raise KeyError(event)


class Harness:
    """Orchestrator wired to stubs, plus handles on every stub."""

    def __init__(self, tmp_path: Path, **overrides: Any) -> None:
        self.clock = FakeClock()
        self.registry = SessionRegistry(clock=self.clock)
        self.artifacts = ArtifactStore(tmp_path / "artifacts")
        self.transcoder = overrides.pop("transcoder", FakeTranscoder())
        self.recognizer = overrides.pop("recognizer", StubRecognizer())
        self.speech = overrides.pop("speech", StubSpeech())
        self.generator = overrides.pop("generator", StubGenerator())
        self.stats = overrides.pop("stats", StubStats())
        self.ip_limiter = overrides.pop(
            "ip_limiter",
            FixedWindowRateLimiter(limit=100, window_seconds=900, now_fn=self.clock),
        )
        self.orchestrator = build_orchestrator(
            recognizer=self.recognizer,
            speech=self.speech,
            generator=self.generator,
            system_stats=self.stats,
            transcoder=self.transcoder,
            artifacts=self.artifacts,
            registry=self.registry,
            ip_limiter=self.ip_limiter,
            jokes=JokeBook(["Why did the chicken cross the road?"]),
            now=lambda: datetime(2024, 5, 1, 9, 30),
        )

    async def connect(self, session_id: str = "s1", client_ip: str | None = None):
        """Open a session and step past the cooldown that starts on connect."""

        session = await self.orchestrator.connect(session_id, client_ip=client_ip)
        self.clock.advance(1.0)
        return session


@pytest.fixture
def harness(tmp_path: Path) -> Harness:
    return Harness(tmp_path)


@pytest.fixture
def make_harness(tmp_path: Path):
    def _make(**overrides: Any) -> Harness:
        return Harness(tmp_path, **overrides)

    return _make

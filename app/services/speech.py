"""Amazon Polly text-to-speech for spoken responses and greetings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings
from app.services.aws import create_boto3_client

logger = logging.getLogger(__name__)

_MEDIA_TYPES = {
    "mp3": "audio/mpeg",
    "ogg_vorbis": "audio/ogg",
    "pcm": "audio/L16",
}


@dataclass(frozen=True)
class VoiceConfig:
    """Fixed voice used for every synthesized reply."""

    language_code: str = field(default_factory=lambda: settings.polly.language_code)
    gender: str = field(default_factory=lambda: settings.polly.gender)
    voice_id: str = field(default_factory=lambda: settings.polly.voice_id)
    engine: str = field(default_factory=lambda: settings.polly.engine)
    encoding: str = field(default_factory=lambda: settings.polly.output_format)

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES.get(self.encoding, "application/octet-stream")

    @property
    def extension(self) -> str:
        return "ogg" if self.encoding == "ogg_vorbis" else self.encoding


class SpeechSynthesisError(RuntimeError):
    """Raised when Polly cannot produce audio for the requested text."""


class PollySpeechService:
    """Synthesizer contract backed by Amazon Polly ``synthesize_speech``."""

    def __init__(self, *, region: str | None = None) -> None:
        self._region = region or settings.polly.region
        self._client: Any | None = None

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = create_boto3_client("polly", region_name=self._region)
        return self._client

    async def synthesize(self, text: str, voice: VoiceConfig) -> bytes:
        """Return encoded audio bytes for ``text``."""

        if not text.strip():
            raise SpeechSynthesisError("Cannot synthesize empty text.")

        try:
            response: dict[str, Any] = await run_in_threadpool(
                self._get_client().synthesize_speech,
                Text=text,
                TextType="text",
                VoiceId=voice.voice_id,
                LanguageCode=voice.language_code,
                Engine=voice.engine,
                OutputFormat=voice.encoding,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Polly synth failed for voice '%s'", voice.voice_id)
            raise SpeechSynthesisError(f"Failed to synthesize speech: {exc}") from exc

        audio_stream = response.get("AudioStream")
        if audio_stream is None:
            raise SpeechSynthesisError("Polly returned no audio stream.")
        try:
            audio_bytes = await run_in_threadpool(audio_stream.read)
        finally:
            audio_stream.close()
        if not audio_bytes:
            raise SpeechSynthesisError("Polly returned an empty audio stream.")
        return audio_bytes


__all__ = [
    "PollySpeechService",
    "SpeechSynthesisError",
    "VoiceConfig",
]

"""Amazon Transcribe integration helpers using Streaming API."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

from amazon_transcribe.client import TranscribeStreamingClient
from amazon_transcribe.handlers import TranscriptResultStreamHandler
from amazon_transcribe.model import TranscriptEvent

from app.config.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriptionResult:
    """Structured transcription outcome returned to the pipeline."""

    transcript: str
    language_code: str | None = None


class TranscriptionError(RuntimeError):
    """Raised when Amazon Transcribe fails to process audio successfully."""


class TranscribeService:
    """High-level facade for streaming PCM audio to Amazon Transcribe."""

    def __init__(
        self,
        region: str,
        *,
        chunk_size: int | None = None,
        media_encoding: str = "pcm",
    ) -> None:
        self._region = region
        self._chunk_size = settings.transcribe.chunk_size if chunk_size is None else chunk_size
        if self._chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._media_encoding = media_encoding
        self._client: TranscribeStreamingClient | None = None

    def _get_client(self) -> TranscribeStreamingClient:
        if self._client is None:
            # The streaming SDK resolves credentials from the environment only.
            if settings.aws.access_key and settings.aws.secret_key:
                os.environ.setdefault("AWS_ACCESS_KEY_ID", settings.aws.access_key)
                os.environ.setdefault(
                    "AWS_SECRET_ACCESS_KEY",
                    settings.aws.secret_key.get_secret_value(),
                )
            self._client = TranscribeStreamingClient(region=self._region)
        return self._client

    async def recognize(
        self,
        pcm: bytes,
        sample_rate: int,
        language_code: str,
    ) -> str:
        """Recognizer contract: return the transcript for ``pcm`` (maybe empty)."""

        result = await self.transcribe_pcm(pcm, sample_rate=sample_rate, language_code=language_code)
        return result.transcript

    async def transcribe_pcm(
        self,
        pcm: bytes,
        *,
        sample_rate: int,
        language_code: str | None = None,
    ) -> TranscriptionResult:
        """Stream PCM to Transcribe and return the full transcript."""

        language = language_code or settings.transcribe.language_code
        if not pcm:
            return TranscriptionResult(transcript="", language_code=language)

        try:
            stream = await self._get_client().start_stream_transcription(
                language_code=language,
                media_sample_rate_hz=sample_rate,
                media_encoding=self._media_encoding,
            )
        except Exception as exc:
            raise TranscriptionError(f"Could not open transcription stream: {exc}") from exc

        handler = _SimpleTranscriptHandler(stream.output_stream)
        chunk_size = self._chunk_size
        # 16-bit mono: two bytes per sample.
        sleep_time = chunk_size / (sample_rate * 2)

        async def write_chunks() -> None:
            logger.info(
                "Starting stream. Total bytes: %d. Chunk size: %d. Sleep: %.4fs",
                len(pcm),
                chunk_size,
                sleep_time,
            )
            for offset in range(0, len(pcm), chunk_size):
                await stream.input_stream.send_audio_event(
                    audio_chunk=pcm[offset : offset + chunk_size]
                )
                # Pace the upload close to real time.
                await asyncio.sleep(sleep_time)
            await stream.input_stream.end_stream()

        try:
            await asyncio.gather(write_chunks(), handler.handle_events())
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Streaming loop failed: %s", exc)
            raise TranscriptionError(f"Streaming transcription failed: {exc}") from exc

        transcript = handler.transcript.strip()
        logger.info("Transcription complete. Length: %d", len(transcript))
        return TranscriptionResult(transcript=transcript, language_code=language)


class _SimpleTranscriptHandler(TranscriptResultStreamHandler):
    def __init__(self, transcript_result_stream):
        super().__init__(transcript_result_stream)
        self.transcript = ""

    async def handle_transcript_event(self, transcript_event: TranscriptEvent):
        for result in transcript_event.transcript.results:
            if result.is_partial or not result.alternatives:
                continue
            self.transcript += result.alternatives[0].transcript + "\n"


__all__ = ["TranscribeService", "TranscriptionError", "TranscriptionResult"]

"""Streaming ffmpeg transcoder for browser-recorded audio clips.

Compressed input is pushed into ffmpeg's stdin from a bounded queue while a
second task drains stdout into another bounded queue, so neither side of the
subprocess can stall the other. The recognizer still consumes the converted
PCM as a single buffer once the completion sentinel arrives.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from uuid import uuid4

import numpy as np

from app.config.settings import settings

logger = logging.getLogger("app.services.voice_pipeline")

_EOF = None


@dataclass(frozen=True)
class AudioJob:
    """One inbound compressed clip awaiting conversion."""

    data: bytes
    input_format: str = field(default_factory=lambda: settings.audio.input_format)
    sample_rate: int = field(default_factory=lambda: settings.audio.sample_rate)
    request_id: str = field(default_factory=lambda: uuid4().hex)


class TranscodeError(RuntimeError):
    """Raised when ffmpeg cannot convert the clip into PCM."""


class AudioTranscoder:
    """Convert compressed audio to raw 16-bit little-endian mono PCM."""

    def __init__(
        self,
        *,
        ffmpeg_path: str | None = None,
        channels: int | None = None,
        chunk_size: int | None = None,
        queue_size: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        audio = settings.audio
        self._ffmpeg_path = audio.ffmpeg_path if ffmpeg_path is None else ffmpeg_path
        self._channels = audio.channels if channels is None else channels
        self._chunk_size = audio.chunk_size if chunk_size is None else chunk_size
        self._queue_size = audio.queue_size if queue_size is None else queue_size
        self._timeout_seconds = audio.timeout_seconds if timeout_seconds is None else timeout_seconds
        if self._channels <= 0 or self._chunk_size <= 0 or self._queue_size <= 0:
            raise ValueError("channels, chunk_size and queue_size must be positive")
        if self._timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    def build_command(self, job: AudioJob) -> list[str]:
        return [
            self._ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-f",
            job.input_format,
            "-i",
            "pipe:0",
            "-f",
            "s16le",
            "-acodec",
            "pcm_s16le",
            "-ac",
            str(self._channels),
            "-ar",
            str(job.sample_rate),
            "pipe:1",
        ]

    async def transcode(self, job: AudioJob) -> bytes:
        """Return PCM for ``job``; an empty clip yields ``b""``."""

        if not job.data:
            logger.info("Empty audio clip request=%s; skipping conversion", job.request_id)
            return b""

        command = self.build_command(job)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise TranscodeError(f"Could not start {command[0]}: {exc}") from exc

        try:
            pcm, stderr = await asyncio.wait_for(
                self._pump(process, job.data),
                timeout=self._timeout_seconds,
            )
            returncode = await process.wait()
        except asyncio.TimeoutError as exc:
            await _kill(process)
            raise TranscodeError(
                f"Audio conversion timed out after {self._timeout_seconds:.1f}s"
            ) from exc
        except BaseException:
            await _kill(process)
            raise

        if returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip() or "no stderr"
            logger.error("ffmpeg failed request=%s rc=%s: %s", job.request_id, returncode, message)
            raise TranscodeError(f"ffmpeg exited with {returncode}: {message}")

        if not pcm:
            logger.warning("ffmpeg produced empty output request=%s", job.request_id)
        logger.info(
            "Converted audio request=%s in=%d bytes out=%d bytes",
            job.request_id,
            len(job.data),
            len(pcm),
        )
        return pcm

    async def _pump(
        self,
        process: asyncio.subprocess.Process,
        data: bytes,
    ) -> tuple[bytes, bytes]:
        inbound: asyncio.Queue[bytes | None] = asyncio.Queue(maxsize=self._queue_size)
        outbound: asyncio.Queue[bytes | None] = asyncio.Queue(maxsize=self._queue_size)
        chunks: list[bytes] = []

        async def produce() -> None:
            for offset in range(0, len(data), self._chunk_size):
                await inbound.put(data[offset : offset + self._chunk_size])
            await inbound.put(_EOF)

        async def feed() -> None:
            broken = False
            while True:
                chunk = await inbound.get()
                if chunk is _EOF:
                    break
                if broken:
                    continue
                try:
                    process.stdin.write(chunk)
                    await process.stdin.drain()
                except ConnectionError:
                    # ffmpeg gave up early; its exit code reports why.
                    broken = True
            with contextlib.suppress(ConnectionError):
                process.stdin.close()
                await process.stdin.wait_closed()

        async def drain() -> None:
            while True:
                chunk = await process.stdout.read(self._chunk_size)
                if not chunk:
                    break
                await outbound.put(chunk)
            await outbound.put(_EOF)

        async def collect() -> None:
            while True:
                chunk = await outbound.get()
                if chunk is _EOF:
                    return
                chunks.append(chunk)

        stderr_task = asyncio.create_task(process.stderr.read())
        tasks = [
            asyncio.create_task(produce()),
            asyncio.create_task(feed()),
            asyncio.create_task(drain()),
            asyncio.create_task(collect()),
            stderr_task,
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        return b"".join(chunks), stderr_task.result()


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    await process.wait()


def pcm_level_dbfs(pcm: bytes) -> float:
    """Return the RMS level of 16-bit PCM in dBFS (``-inf`` for silence)."""

    usable = len(pcm) - (len(pcm) % 2)
    if usable <= 0:
        return float("-inf")
    samples = np.frombuffer(pcm[:usable], dtype=np.int16).astype(np.float32) / 32768.0
    rms = float(np.sqrt(np.mean(samples**2)))
    if rms <= 0.0:
        return float("-inf")
    return 20.0 * float(np.log10(rms))


__all__ = ["AudioJob", "AudioTranscoder", "TranscodeError", "pcm_level_dbfs"]

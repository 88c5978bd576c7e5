"""Host statistics used by the local command handlers."""

from __future__ import annotations

import psutil
from fastapi.concurrency import run_in_threadpool


class PsutilSystemStats:
    """System-stats contract: current CPU utilisation as a percentage."""

    def __init__(self, *, sample_interval: float = 0.5) -> None:
        self._sample_interval = sample_interval

    async def cpu_percent(self) -> float:
        # psutil blocks for the sampling interval, keep it off the event loop.
        return await run_in_threadpool(psutil.cpu_percent, interval=self._sample_interval)


__all__ = ["PsutilSystemStats"]

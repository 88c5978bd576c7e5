"""Keyword routing of transcripts to local handlers or the generative model.

Predicates are evaluated in declaration order and the first keyword found in
the lower-cased transcript wins, so "what's the time and tell me a joke" is
answered by the time handler.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Sequence

from app.config.settings import settings
from app.pipelines.voice.types import RoutedResponse, SystemStats, TextGenerator
from app.services.jokes import JokeBook
from app.telemetry import observe_route, observe_stage

logger = logging.getLogger("app.services.voice_pipeline")

Now = Callable[[], datetime]
Handler = Callable[[str], Awaitable[RoutedResponse]]

GENERATIVE_HANDLER = "generative"


@dataclass(frozen=True)
class KeywordRoute:
    keyword: str
    handler: str


DEFAULT_ROUTES: tuple[KeywordRoute, ...] = (
    KeywordRoute("time", "time"),
    KeywordRoute("date", "date"),
    KeywordRoute("cpu", "cpu"),
    KeywordRoute("joke", "joke"),
)


def format_time(moment: datetime) -> str:
    return moment.strftime("%I:%M:%S %p").lstrip("0")


def format_date(moment: datetime) -> str:
    return f"{moment.month}/{moment.day}/{moment.year}"


class TranscriptRouter:
    """Pick a handler for a non-empty transcript and produce the reply text."""

    def __init__(
        self,
        generator: TextGenerator,
        system_stats: SystemStats,
        jokes: JokeBook,
        *,
        routes: Sequence[KeywordRoute] = DEFAULT_ROUTES,
        system_prompt: str | None = None,
        fallback_response: str | None = None,
        now: Now | None = None,
    ) -> None:
        self._generator = generator
        self._system_stats = system_stats
        self._jokes = jokes
        self._routes = tuple(routes)
        self._system_prompt = system_prompt or settings.session.system_prompt
        self._fallback_response = fallback_response or settings.session.fallback_response
        self._now = now or datetime.now
        self._handlers: dict[str, Handler] = {
            "time": self._time,
            "date": self._date,
            "cpu": self._cpu,
            "joke": self._joke,
        }

    def classify(self, transcript: str) -> str:
        """Return the handler name for ``transcript`` without running it."""

        normalized = transcript.lower()
        for route in self._routes:
            if route.keyword in normalized:
                return route.handler
        return GENERATIVE_HANDLER

    async def route(self, transcript: str) -> RoutedResponse:
        handler_name = self.classify(transcript)
        handler = self._handlers.get(handler_name, self._generate)
        response = await handler(transcript)
        observe_route(response.handler)
        logger.info("Routed transcript to handler=%s", response.handler)
        return response

    async def _time(self, _transcript: str) -> RoutedResponse:
        return RoutedResponse(f"The current time is {format_time(self._now())}.", "time")

    async def _date(self, _transcript: str) -> RoutedResponse:
        return RoutedResponse(f"The current date is {format_date(self._now())}.", "date")

    async def _cpu(self, _transcript: str) -> RoutedResponse:
        usage = await self._system_stats.cpu_percent()
        return RoutedResponse(f"CPU Usage is at {usage:g}%.", "cpu")

    async def _joke(self, _transcript: str) -> RoutedResponse:
        return RoutedResponse(self._jokes.random_joke(), "joke")

    async def _generate(self, transcript: str) -> RoutedResponse:
        started = time.perf_counter()
        try:
            reply = await self._generator.generate(self._system_prompt, transcript)
        except Exception as exc:
            # Generation failures never propagate; the caller gets the fallback.
            observe_stage("generate", time.perf_counter() - started, failed=True)
            logger.exception("Error generating AI response")
            return RoutedResponse(self._fallback_response, GENERATIVE_HANDLER, error=exc)
        observe_stage("generate", time.perf_counter() - started)
        return RoutedResponse(reply.strip(), GENERATIVE_HANDLER)


__all__ = [
    "DEFAULT_ROUTES",
    "GENERATIVE_HANDLER",
    "KeywordRoute",
    "TranscriptRouter",
    "format_date",
    "format_time",
]

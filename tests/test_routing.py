from __future__ import annotations

import random
from datetime import datetime

import pyjokes
import pytest

from app.pipelines.voice.routing import (
    GENERATIVE_HANDLER,
    TranscriptRouter,
    format_date,
    format_time,
)
from app.services.jokes import JokeBook
from app.services.llm_client import LlmInvocationError
from tests.conftest import StubGenerator, StubStats

FIXED_NOW = datetime(2024, 1, 2, 15, 4, 5)


def _router(generator: StubGenerator | None = None) -> tuple[TranscriptRouter, StubGenerator]:
    generator = generator or StubGenerator()
    router = TranscriptRouter(
        generator,
        StubStats(42.5),
        JokeBook(["Knock knock."], rng=random.Random(0)),
        now=lambda: FIXED_NOW,
    )
    return router, generator


@pytest.mark.asyncio
async def test_time_wins_over_joke() -> None:
    router, generator = _router()

    response = await router.route("what's the time and tell me a joke")

    assert response.handler == "time"
    assert response.text == "The current time is 3:04:05 PM."
    assert generator.calls == []


@pytest.mark.parametrize(
    ("transcript", "handler"),
    [
        ("What is the DATE today", "date"),
        ("how busy is the CPU", "cpu"),
        ("Tell me a joke", "joke"),
        ("date and cpu please", "date"),
        ("any update?", "date"),
        ("what's the weather like", GENERATIVE_HANDLER),
    ],
)
def test_classify_follows_keyword_order(transcript: str, handler: str) -> None:
    router, _ = _router()

    assert router.classify(transcript) == handler


@pytest.mark.asyncio
async def test_local_handlers_format_replies() -> None:
    router, generator = _router()

    assert (await router.route("date")).text == "The current date is 1/2/2024."
    assert (await router.route("cpu")).text == "CPU Usage is at 42.5%."
    assert (await router.route("joke")).text == "Knock knock."
    assert generator.calls == []


@pytest.mark.asyncio
async def test_fallback_uses_generator_with_system_prompt() -> None:
    router, generator = _router(StubGenerator(reply="  Sure thing.  "))

    response = await router.route("Who wrote Hamlet?")

    assert response.handler == GENERATIVE_HANDLER
    assert response.text == "Sure thing."
    assert response.error is None
    system_prompt, user_text = generator.calls[0]
    assert "concise" in system_prompt
    assert user_text == "Who wrote Hamlet?"


@pytest.mark.asyncio
async def test_generator_failure_returns_fallback_text() -> None:
    failure = LlmInvocationError("throttled")
    router, _ = _router(StubGenerator(error=failure))

    response = await router.route("Who wrote Hamlet?")

    assert response.text == "I'm sorry, I'm having trouble processing your request right now."
    assert response.error is failure


def test_time_and_date_formatting() -> None:
    assert format_time(datetime(2024, 3, 9, 9, 5, 7)) == "9:05:07 AM"
    assert format_time(datetime(2024, 3, 9, 0, 0, 0)) == "12:00:00 AM"
    assert format_date(datetime(2024, 12, 25)) == "12/25/2024"


def test_default_joke_book_draws_from_pyjokes() -> None:
    catalogue = pyjokes.get_jokes(language="en", category="neutral")

    assert JokeBook(rng=random.Random(1)).random_joke() in catalogue


def test_joke_book_rejects_empty_catalogue() -> None:
    with pytest.raises(ValueError):
        JokeBook([])

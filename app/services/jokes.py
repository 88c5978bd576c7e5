"""One-liner jokes for the local ``joke`` handler, backed by pyjokes."""

from __future__ import annotations

import random
from typing import Sequence

import pyjokes


class JokeBook:
    """Pick short jokes from the pyjokes catalogue or an injected list."""

    def __init__(
        self,
        jokes: Sequence[str] | None = None,
        *,
        language: str = "en",
        category: str = "neutral",
        rng: random.Random | None = None,
    ) -> None:
        if jokes is None:
            jokes = pyjokes.get_jokes(language=language, category=category)
        if not jokes:
            raise ValueError("JokeBook needs at least one joke.")
        self._jokes = tuple(jokes)
        self._rng = rng or random.Random()

    def random_joke(self) -> str:
        return self._rng.choice(self._jokes)


__all__ = ["JokeBook"]

"""Time-of-day aware greeting text."""

from __future__ import annotations

from datetime import datetime

from app.config.settings import settings


def part_of_day_phrase(hour: int) -> str:
    if 6 <= hour < 12:
        return "Good Morning Sir! "
    if 12 <= hour < 18:
        return "Good Afternoon Sir! "
    if 18 <= hour < 24:
        return "Good Evening Sir! "
    return "Good Night Sir! "


def build_greeting(
    display_name: str,
    *,
    moment: datetime | None = None,
    assistant_name: str | None = None,
) -> str:
    moment = moment or datetime.now()
    assistant = assistant_name or settings.session.assistant_name
    name = display_name.strip() or "there"
    return (
        f"Welcome Back {name}! "
        f"{part_of_day_phrase(moment.hour)}"
        f"{assistant} at your service. Please tell me how can I help you today?"
    )


__all__ = ["build_greeting", "part_of_day_phrase"]

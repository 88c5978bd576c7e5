"""Schemas for websocket events exchanged with voice clients."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Literal, Optional

from pydantic import BaseModel, ValidationError

ClientEventName = Literal["requestGreeting", "audioStream", "interrupt"]


class ClientEvent(BaseModel):
    event: ClientEventName
    data: Optional[Any] = None


class ServerEvent(BaseModel):
    event: str
    data: Optional[Any] = None


class SessionInfo(BaseModel):
    id: str


def parse_client_event(raw: str) -> ClientEvent:
    """Validate a JSON text frame; raises ``ValueError`` with a readable message."""

    try:
        return ClientEvent.model_validate_json(raw)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ())) or "message"
        raise ValueError(f"Invalid event ({location}): {first.get('msg', 'malformed')}") from None


def decode_audio_payload(data: Any) -> bytes:
    """Decode base64 audio carried in a JSON ``audioStream`` event."""

    if not isinstance(data, str):
        raise ValueError("audioStream payload must be a base64 string")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("audioStream payload is not valid base64") from exc


def encode_payload(data: Any) -> Any:
    if isinstance(data, (bytes, bytearray)):
        return base64.b64encode(bytes(data)).decode("ascii")
    if isinstance(data, BaseModel):
        return data.model_dump()
    return data


__all__ = [
    "ClientEvent",
    "ServerEvent",
    "SessionInfo",
    "decode_audio_payload",
    "encode_payload",
    "parse_client_event",
]

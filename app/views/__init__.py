"""Pydantic schemas used as views in the MVC architecture."""

from .events import (
    ClientEvent,
    ServerEvent,
    SessionInfo,
    decode_audio_payload,
    encode_payload,
    parse_client_event,
)

__all__ = [
    "ClientEvent",
    "ServerEvent",
    "SessionInfo",
    "decode_audio_payload",
    "encode_payload",
    "parse_client_event",
]

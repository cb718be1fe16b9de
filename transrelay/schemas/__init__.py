"""Pydantic schemas for the relay wire protocol and the session HTTP API."""
from transrelay.schemas.message import (
    RelayMessage,
    parse_frame,
    parse_relay_frame,
    ping_frame,
    pong_frame,
)
from transrelay.schemas.session import (
    CreateSessionRequest,
    CreateSessionResponse,
    SessionSnapshot,
)

__all__ = [
    "RelayMessage",
    "parse_frame",
    "parse_relay_frame",
    "ping_frame",
    "pong_frame",
    "CreateSessionRequest",
    "CreateSessionResponse",
    "SessionSnapshot",
]

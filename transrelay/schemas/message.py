"""
Wire schema for relay frames: one JSON object per WebSocket frame.

A single shape with all-optional fields; senders use different subsets
(speaker: transcription/translations/fullTranslations/languages/sessionStarted,
everyone: ping). Merge rules dispatch on field presence, never on a type tag.
"""
from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from transrelay.exceptions import MalformedMessageError

PING = "ping"
PONG = "pong"

# Keys the relay routes and merges on; everything else passes through unvalidated.
RELAY_KEYS = ("sessionId", "type", "languages", "fullTranslations", "sessionStarted")


class RelayMessage(BaseModel):
    """One relay frame. Unknown keys are kept so the relay can forward them untouched."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    session_id: str | None = Field(None, alias="sessionId", description="Routing key; required for non-ping frames")
    type: str | None = Field(None, description="'ping' / 'pong' for liveness only")
    transcription: str | None = Field(None, description="Latest interim or final recognized text (replaces)")
    translations: dict[str, str] | None = Field(None, description="language -> latest utterance translation (replaces)")
    full_translations: dict[str, str] | None = Field(
        None,
        alias="fullTranslations",
        description="language -> delta appended to the accumulated buffer",
    )
    languages: list[str] | None = Field(None, description="Full replacement of the target-language set")
    session_started: bool | None = Field(None, alias="sessionStarted")
    is_complete: bool | None = Field(None, alias="isComplete", description="True when the utterance is final")

    def has(self, field: str) -> bool:
        """Presence check used by merge/dispatch: field was sent and is not null."""
        return field in self.model_fields_set and getattr(self, field) is not None

    @property
    def is_ping(self) -> bool:
        return self.type == PING

    @property
    def is_pong(self) -> bool:
        return self.type == PONG

    def to_wire(self) -> str:
        return json.dumps(self.model_dump(by_alias=True, exclude_unset=True), ensure_ascii=False)


def _load_object(raw: str | bytes) -> dict:
    try:
        data: Any = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedMessageError(f"expected JSON object, got {type(data).__name__}")
    return data


def _validate(data: dict) -> RelayMessage:
    try:
        return RelayMessage.model_validate(data)
    except ValidationError as e:
        raise MalformedMessageError(f"invalid fields: {e.error_count()} error(s)") from e


def parse_frame(raw: str | bytes) -> RelayMessage:
    """Parse one WebSocket text frame. Raises MalformedMessageError on bad JSON or bad field types."""
    return _validate(_load_object(raw))


def parse_relay_frame(raw: str | bytes) -> RelayMessage:
    """Parse a frame for routing and merging only.

    Live-only fields (transcription, translations, isComplete, unknown keys) are
    not inspected: the relay forwards them as sent and never stores them.
    """
    data = _load_object(raw)
    return _validate({key: data[key] for key in RELAY_KEYS if key in data})


def pong_frame() -> str:
    return json.dumps({"type": PONG})


def ping_frame() -> str:
    return json.dumps({"type": PING})

"""Error types shared by the relay server and the endpoints."""
from __future__ import annotations


class RelayError(Exception):
    """Base class for all transrelay errors."""


class MalformedMessageError(RelayError):
    """Inbound frame could not be parsed into a relay message."""


class StoreError(RelayError):
    """Durable session store failed to read or write a record."""

    def __init__(self, session_id: str, message: str) -> None:
        super().__init__(f"session {session_id}: {message}")
        self.session_id = session_id


class SynthesisError(RelayError):
    """Speech synthesis or playback failed for one utterance."""

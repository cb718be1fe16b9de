"""Relay endpoints: reconnecting client, listener, speaker."""
from .listener import Listener, ListenerState, fetch_snapshot
from .relay_client import ClientState, RelayClient
from .speaker import RecognitionEvent, Recognizer, Speaker

__all__ = [
    "ClientState",
    "RelayClient",
    "Listener",
    "ListenerState",
    "fetch_snapshot",
    "RecognitionEvent",
    "Recognizer",
    "Speaker",
]

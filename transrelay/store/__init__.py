"""Durable session snapshots: interface, merge rule, backends."""
from __future__ import annotations

from transrelay.config import Settings, get_settings
from transrelay.store.base import SessionRecord, SessionStore, append_delta, merge_message
from transrelay.store.memory import InMemorySessionStore
from transrelay.store.sqlite import SqliteSessionStore


def create_session_store(settings: Settings | None = None) -> SessionStore:
    """Pick the backend from STORE_BACKEND (sqlite | memory)."""
    settings = settings or get_settings()
    if settings.STORE_BACKEND == "memory":
        return InMemorySessionStore()
    return SqliteSessionStore(settings.STORE_SQLITE_PATH)


__all__ = [
    "SessionRecord",
    "SessionStore",
    "append_delta",
    "merge_message",
    "InMemorySessionStore",
    "SqliteSessionStore",
    "create_session_store",
]

"""
Session store interface and the merge rule applied to every relay frame.

Only the relay server reads/writes the store. The store keeps the last known
snapshot so a listener that reconnects (or a server that restarts) can catch
up on the accumulated translation buffers.
"""
from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from transrelay.schemas.message import RelayMessage
from transrelay.schemas.session import SessionSnapshot


@dataclass
class SessionRecord:
    """Durable state of one session."""

    target_languages: list[str] = field(default_factory=list)
    # language -> accumulated buffer; kept even after the language is dropped from target_languages
    translations_by_language: dict[str, str] = field(default_factory=dict)
    started: bool = False

    def to_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            languages=list(self.target_languages),
            full_translations=dict(self.translations_by_language),
        )


def append_delta(buffers: dict[str, str], deltas: dict[str, str]) -> None:
    """Append "\\n" + delta per language, creating the buffer when absent. Never replaces."""
    for lang, delta in deltas.items():
        buffers[lang] = buffers.get(lang, "") + "\n" + delta


def merge_message(record: SessionRecord | None, message: RelayMessage) -> SessionRecord:
    """
    Return a new record with message merged in. Field presence selects the rule:
    languages -> replace, fullTranslations -> append, sessionStarted -> replace.
    Other fields (transcription, translations, isComplete) are live-only and not stored.
    """
    merged = copy.deepcopy(record) if record is not None else SessionRecord()
    if message.has("languages"):
        merged.target_languages = list(message.languages)
    if message.has("full_translations"):
        append_delta(merged.translations_by_language, message.full_translations)
    if message.has("session_started"):
        merged.started = bool(message.session_started)
    return merged


class SessionStore(ABC):
    """Durable keyed map: session_id -> SessionRecord."""

    @abstractmethod
    async def get(self, session_id: str) -> SessionRecord | None:
        """Return the record or None if the session is unknown."""
        ...

    @abstractmethod
    async def put(self, session_id: str, record: SessionRecord) -> None:
        """Store or overwrite the record. Raises StoreError on failure."""
        ...

    async def create(self, session_id: str) -> SessionRecord:
        """Create an empty record. Idempotent: an existing record is replaced with an empty one."""
        record = SessionRecord()
        await self.put(session_id, record)
        return record

    async def close(self) -> None:
        """Release resources. Default: nothing to release."""
        return None

"""In-memory session store. Not durable across restart; used for dev and tests."""
from __future__ import annotations

import copy

from transrelay.store.base import SessionRecord, SessionStore


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}

    async def get(self, session_id: str) -> SessionRecord | None:
        record = self._records.get(session_id)
        # Copy so callers can't mutate stored state without put()
        return copy.deepcopy(record) if record is not None else None

    async def put(self, session_id: str, record: SessionRecord) -> None:
        self._records[session_id] = copy.deepcopy(record)

    def __len__(self) -> int:
        return len(self._records)

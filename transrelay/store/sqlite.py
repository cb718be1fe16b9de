"""
SQLite-backed session store: one row per session, JSON columns for languages
and accumulated translations.

sqlite3 is blocking, so every call runs in the default executor; a lock
serializes access to the shared connection across executor threads.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import sqlite3
import threading
from typing import Optional

from transrelay.exceptions import StoreError
from transrelay.store.base import SessionRecord, SessionStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    session_id TEXT PRIMARY KEY,
    languages TEXT,
    full_translations TEXT,
    started INTEGER NOT NULL DEFAULT 0
)
"""


class SqliteSessionStore(SessionStore):
    def __init__(self, path: str) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            db_dir = os.path.dirname(self._path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
            conn = sqlite3.connect(self._path, check_same_thread=False)
            conn.execute(_SCHEMA)
            conn.commit()
            self._conn = conn
            logger.info("Session store opened: %s", self._path)
        return self._conn

    def _get_sync(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            row = self._connect().execute(
                "SELECT languages, full_translations, started FROM sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        if row is None:
            return None
        languages, full_translations, started = row
        return SessionRecord(
            target_languages=json.loads(languages or "[]"),
            translations_by_language=json.loads(full_translations or "{}"),
            started=bool(started),
        )

    def _put_sync(self, session_id: str, record: SessionRecord) -> None:
        with self._lock:
            conn = self._connect()
            conn.execute(
                "INSERT OR REPLACE INTO sessions (session_id, languages, full_translations, started) "
                "VALUES (?, ?, ?, ?)",
                (
                    session_id,
                    json.dumps(record.target_languages, ensure_ascii=False),
                    json.dumps(record.translations_by_language, ensure_ascii=False),
                    int(record.started),
                ),
            )
            conn.commit()

    async def get(self, session_id: str) -> SessionRecord | None:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._get_sync, session_id)
        except (sqlite3.Error, ValueError) as e:
            raise StoreError(session_id, f"read failed: {e}") from e

    async def put(self, session_id: str, record: SessionRecord) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._put_sync, session_id, record)
        except sqlite3.Error as e:
            raise StoreError(session_id, f"write failed: {e}") from e

    async def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

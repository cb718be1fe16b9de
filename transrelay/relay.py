"""
RelayHub: fan-out of session updates to every connected endpoint.

One WebSocket = one RelayConnection. Each inbound frame is parsed, merged into
the session's durable record (serialized per session id), then forwarded
verbatim to every other open connection. Connections filter on sessionId
themselves; the hub keeps no subscription table.

Sending never blocks the receive path: each connection owns a bounded outbox
drained by its own sender task. A full outbox drops the frame for that
connection only; a failed send closes that connection only.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import WebSocket

from transrelay.exceptions import MalformedMessageError, StoreError
from transrelay.schemas.message import RelayMessage, parse_relay_frame, pong_frame
from transrelay.store.base import SessionRecord, SessionStore, merge_message

logger = logging.getLogger(__name__)

# Fields that change the stored record; frames with none of these only update live display state.
_STORED_FIELDS = ("languages", "full_translations", "session_started")


class RelayConnection:
    """One connected endpoint. Outbound frames go through a bounded queue and a single writer task."""

    def __init__(self, websocket: WebSocket, send_queue_size: int = 256) -> None:
        self._ws = websocket
        self.connection_id = uuid.uuid4().hex[:12]
        # Bound lazily to the first sessionId this connection sends; informational only.
        self.session_id: Optional[str] = None
        self._outbox: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=max(1, send_queue_size))
        self._sender_task: Optional[asyncio.Task] = None
        self._closed = False
        self.dropped = 0

    @property
    def is_open(self) -> bool:
        return not self._closed

    def start(self) -> None:
        if self._sender_task is None:
            self._sender_task = asyncio.create_task(self._sender())

    async def _sender(self) -> None:
        while True:
            payload = await self._outbox.get()
            if payload is None:
                break
            try:
                await self._ws.send_text(payload)
            except Exception as e:
                logger.warning("Send to connection %s failed, closing it: %s", self.connection_id, e)
                self._closed = True
                break

    def offer(self, payload: str) -> bool:
        """Queue a frame without waiting. Returns False if the connection is closed or its outbox is full."""
        if self._closed:
            return False
        try:
            self._outbox.put_nowait(payload)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Outbox full for connection %s (session=%s), dropping frame (%d dropped so far)",
                self.connection_id,
                self.session_id,
                self.dropped,
            )
            return False
        return True

    async def close(self) -> None:
        self._closed = True
        task = self._sender_task
        self._sender_task = None
        if task is None or task.done():
            return
        try:
            self._outbox.put_nowait(None)
            await asyncio.wait_for(task, timeout=1.0)
        except (asyncio.QueueFull, asyncio.TimeoutError):
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


class SessionLockRegistry:
    """One asyncio.Lock per session id, created on demand and dropped when unused.

    asyncio.Lock wakes waiters in FIFO order, so merges for a session run in the
    order their frames reached the hub.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._holders[session_id] = self._holders.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[session_id] -= 1
            if self._holders[session_id] == 0:
                del self._holders[session_id]
                del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._locks)


class RelayHub:
    """Owns the live connection set. Only register / deregister / broadcast touch it."""

    def __init__(self, store: SessionStore, send_queue_size: int = 256) -> None:
        self._store = store
        self._send_queue_size = send_queue_size
        self._connections: dict[str, RelayConnection] = {}
        self._locks = SessionLockRegistry()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, websocket: WebSocket) -> RelayConnection:
        conn = RelayConnection(websocket, self._send_queue_size)
        conn.start()
        self._connections[conn.connection_id] = conn
        logger.info("Connection %s registered (%d open)", conn.connection_id, len(self._connections))
        return conn

    async def deregister(self, conn: RelayConnection) -> None:
        self._connections.pop(conn.connection_id, None)
        await conn.close()
        logger.info(
            "Connection %s closed (session=%s, %d open)",
            conn.connection_id,
            conn.session_id,
            len(self._connections),
        )

    def broadcast(self, exclude: Optional[RelayConnection], payload: str) -> int:
        """Offer payload to every open connection except `exclude`. Returns how many accepted it."""
        delivered = 0
        # Snapshot: deregister may run while we iterate
        for conn in list(self._connections.values()):
            if conn is exclude or not conn.is_open:
                continue
            if conn.offer(payload):
                delivered += 1
        return delivered

    async def handle_frame(self, conn: RelayConnection, raw: str | bytes) -> None:
        """Process one inbound frame. Every failure here is logged and contained to this frame."""
        try:
            text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
            message = parse_relay_frame(text)
        except (UnicodeDecodeError, MalformedMessageError) as e:
            logger.warning("Dropping malformed frame from connection %s: %s", conn.connection_id, e)
            return

        if message.is_ping:
            conn.offer(pong_frame())
            return

        session_id = message.session_id
        if not session_id:
            logger.warning("Dropping frame without sessionId from connection %s", conn.connection_id)
            return
        if conn.session_id is None:
            conn.session_id = session_id
            logger.info("Connection %s bound to session %s", conn.connection_id, session_id)

        async with self._locks.hold(session_id):
            await self._persist(session_id, message)
            delivered = self.broadcast(conn, text)
        logger.debug("Session %s: frame relayed to %d connection(s)", session_id, delivered)

    async def _persist(self, session_id: str, message: RelayMessage) -> None:
        """Merge then put. Store failures are logged; the caller still broadcasts."""
        try:
            record = await self._store.get(session_id)
            if record is not None and not any(message.has(f) for f in _STORED_FIELDS):
                return
            await self._store.put(session_id, merge_message(record, message))
        except StoreError as e:
            logger.warning("Snapshot not persisted: %s", e)
        except Exception:
            logger.exception("Unexpected store error for session %s", session_id)

    async def create_session(self, session_id: str) -> SessionRecord:
        """Reset the session to an empty record, serialized with in-flight merges. Raises StoreError."""
        async with self._locks.hold(session_id):
            return await self._store.create(session_id)

    async def close_all(self) -> None:
        for conn in list(self._connections.values()):
            await self.deregister(conn)

"""
RelayClient: one logical connection from an endpoint (speaker or listener) to the relay.

State machine: CONNECTING -> OPEN -> CLOSED -> (fixed delay) -> CONNECTING ...
until stop() is called. While OPEN a keepalive task sends {"type": "ping"}
every keepalive_seconds. Frames are never buffered while disconnected:
anything relayed during the gap is missed (catch-up is the snapshot API).
"""
from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import suppress
from typing import Any, AsyncContextManager, Awaitable, Callable, Optional

import websockets

from transrelay.exceptions import MalformedMessageError
from transrelay.schemas.message import RelayMessage, parse_frame, ping_frame

logger = logging.getLogger(__name__)

MessageHandler = Callable[[RelayMessage], None]
OpenHook = Callable[[], Awaitable[None]]
ConnectFn = Callable[[str], AsyncContextManager[Any]]


class ClientState(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    STOPPED = "stopped"


class RelayClient:
    def __init__(
        self,
        url: str,
        on_message: MessageHandler,
        on_open: Optional[OpenHook] = None,
        keepalive_seconds: float = 30.0,
        reconnect_delay_seconds: float = 5.0,
        connect: Optional[ConnectFn] = None,
    ) -> None:
        self._url = url
        self._on_message = on_message
        self._on_open = on_open
        self._keepalive_seconds = keepalive_seconds
        self._reconnect_delay = reconnect_delay_seconds
        self._connect: ConnectFn = connect or websockets.connect
        self._ws: Any = None
        self._state = ClientState.CLOSED
        self._stop_event = asyncio.Event()
        self._opened = asyncio.Event()
        self._attempt: Optional[asyncio.Task] = None
        self.connect_count = 0

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ClientState.OPEN and self._ws is not None

    def _set_state(self, state: ClientState) -> None:
        if state is not self._state:
            logger.debug("Relay client %s -> %s", self._state.value, state.value)
        self._state = state
        if state is ClientState.OPEN:
            self._opened.set()
        else:
            self._opened.clear()

    async def wait_open(self, timeout: Optional[float] = None) -> None:
        await asyncio.wait_for(self._opened.wait(), timeout=timeout)

    async def run(self) -> None:
        """Connect and keep reconnecting until stop(). Never raises for network errors."""
        while not self._stop_event.is_set():
            self._set_state(ClientState.CONNECTING)
            self._attempt = asyncio.create_task(self._connect_and_serve())
            try:
                await self._attempt
                logger.info("Relay connection closed by server")
            except asyncio.CancelledError:
                # stop() abandons a pending handshake; any other cancellation is ours to propagate
                if not self._stop_event.is_set():
                    raise
            except (websockets.WebSocketException, OSError, asyncio.TimeoutError) as e:
                logger.warning("Relay connection to %s lost: %s", self._url, e)
            finally:
                self._attempt = None
            if self._stop_event.is_set():
                break
            self._set_state(ClientState.CLOSED)
            logger.info("Reconnecting in %.1fs", self._reconnect_delay)
            with suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._reconnect_delay)
        self._set_state(ClientState.STOPPED)

    async def _connect_and_serve(self) -> None:
        async with self._connect(self._url) as ws:
            await self._session(ws)

    async def _session(self, ws: Any) -> None:
        self._ws = ws
        self.connect_count += 1
        self._set_state(ClientState.OPEN)
        logger.info("Relay connection open (%s, attempt %d)", self._url, self.connect_count)
        keepalive = asyncio.create_task(self._keepalive())
        try:
            if self._on_open is not None:
                try:
                    await self._on_open()
                except Exception:
                    logger.exception("on_open hook failed")
            await self._receive_loop(ws)
        finally:
            self._ws = None
            keepalive.cancel()
            with suppress(asyncio.CancelledError):
                await keepalive

    async def _keepalive(self) -> None:
        while True:
            await asyncio.sleep(self._keepalive_seconds)
            if not await self.send_raw(ping_frame()):
                return

    async def _receive_loop(self, ws: Any) -> None:
        async for raw in ws:
            try:
                message = parse_frame(raw)
            except MalformedMessageError as e:
                logger.warning("Dropping malformed frame from relay: %s", e)
                continue
            if message.is_pong:
                continue
            try:
                self._on_message(message)
            except Exception:
                logger.exception("Message handler failed for session %s", message.session_id)

    async def send_raw(self, payload: str) -> bool:
        ws = self._ws
        if ws is None or self._state is not ClientState.OPEN:
            return False
        try:
            await ws.send(payload)
        except (websockets.WebSocketException, OSError) as e:
            logger.warning("Send to relay failed: %s", e)
            return False
        return True

    async def send(self, message: RelayMessage | dict) -> bool:
        """Send one frame if connected. Returns False (frame dropped) while disconnected."""
        if isinstance(message, dict):
            message = RelayMessage.model_validate(message)
        sent = await self.send_raw(message.to_wire())
        if not sent:
            logger.debug("Relay not open; dropped frame for session %s", message.session_id)
        return sent

    async def stop(self) -> None:
        self._stop_event.set()
        ws = self._ws
        if ws is not None:
            with suppress(Exception):
                await ws.close()
        elif self._attempt is not None and not self._attempt.done():
            # Still handshaking: don't wait out the library's open timeout.
            self._attempt.cancel()

import asyncio
import json
from contextlib import asynccontextmanager


async def wait_for(predicate, timeout: float = 1.0, interval: float = 0.005):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


class FakeRelaySocket:
    """Client-side stand-in for a websockets connection."""

    def __init__(self):
        self.sent = []
        self._inbound = asyncio.Queue()
        self.closed = False

    def push(self, frame):
        self._inbound.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def close_from_server(self):
        self._inbound.put_nowait(None)

    async def send(self, text):
        self.sent.append(json.loads(text))

    async def close(self):
        self.closed = True
        self._inbound.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._inbound.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


class FakeConnector:
    """Replaces websockets.connect: fails `failures` times, then hands out sockets in order."""

    def __init__(self, sockets, failures: int = 0):
        self.sockets = list(sockets)
        self.failures = failures
        self.attempts = 0

    @asynccontextmanager
    async def _open(self, sock):
        yield sock

    def __call__(self, url):
        self.attempts += 1
        if self.failures > 0 or not self.sockets:
            self.failures = max(0, self.failures - 1)
            raise OSError("connection refused")
        return self._open(self.sockets.pop(0))


class FakeServerSocket:
    """Server-side stand-in for a FastAPI WebSocket used by RelayHub."""

    def __init__(self, fail: bool = False, gate: asyncio.Event = None):
        self.sent = []
        self.fail = fail
        self.gate = gate

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("socket gone")
        if self.gate is not None:
            await self.gate.wait()
        self.sent.append(text)


class StalledConnector:
    """Replaces websockets.connect with a handshake that never completes."""

    def __init__(self):
        self.attempts = 0
        self.cancelled = False

    @asynccontextmanager
    async def _open(self):
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        yield None

    def __call__(self, url):
        self.attempts += 1
        return self._open()

"""
PlaybackQueue: strictly sequential synthesize-then-play for one listener.

Completed utterances arrive asynchronously from the relay; each becomes one
PlaybackItem. Items play in FIFO order and never overlap: item N+1 starts only
after item N's synthesis/playback coroutine has returned or raised. A failed
item is logged and counted as done so one bad utterance never stalls the rest.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Synthesize = Callable[[str, str], Awaitable[None]]


@dataclass(frozen=True)
class PlaybackItem:
    """One utterance to speak: translated text and its language."""

    text: str
    language_code: str


class PlaybackQueue:
    """FIFO of PlaybackItem with at most one synthesis in flight."""

    def __init__(self, synthesize: Synthesize) -> None:
        self._synthesize = synthesize
        self._queue: deque[PlaybackItem] = deque()
        self._in_flight = False
        self._task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False
        self.played = 0
        self.failed = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def pending(self) -> int:
        return len(self._queue)

    def enqueue(self, item: PlaybackItem) -> None:
        """Append to the tail. Never blocks; must be called from the event loop thread."""
        if self._closed:
            logger.debug("Playback queue closed; ignoring %r", item)
            return
        self._queue.append(item)
        self._idle.clear()
        self._drain()

    def _drain(self) -> None:
        if self._in_flight or self._closed:
            return
        if not self._queue:
            self._idle.set()
            return
        item = self._queue.popleft()
        self._in_flight = True
        self._task = asyncio.create_task(self._play(item))

    async def _play(self, item: PlaybackItem) -> None:
        try:
            await self._synthesize(item.text, item.language_code)
            self.played += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failed += 1
            logger.warning(
                "Playback failed for %d chars in %s, skipping: %s",
                len(item.text),
                item.language_code,
                e,
            )
        finally:
            self._in_flight = False
            self._task = None
            if not self._closed:
                self._drain()

    async def join(self) -> None:
        """Wait until every enqueued item has finished (played or failed)."""
        await self._idle.wait()

    async def close(self) -> None:
        """Local shutdown only: drop pending items and cancel the one in flight."""
        self._closed = True
        self._queue.clear()
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._in_flight = False
        self._idle.set()

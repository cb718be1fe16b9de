"""
Listener endpoint: follows one session, keeps the local display state, and
speaks every completed translation in the selected language through the
playback queue.

The relay forwards every frame to every connection, so the listener filters
on sessionId itself. Dispatch is by field presence, like the server merge.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from transrelay.client.relay_client import ConnectFn, RelayClient
from transrelay.config import Settings, get_settings
from transrelay.playback import PlaybackItem, PlaybackQueue, Synthesize
from transrelay.schemas.message import RelayMessage
from transrelay.schemas.session import SessionSnapshot
from transrelay.store.base import append_delta
from transrelay.tts.service import create_speech_output

logger = logging.getLogger(__name__)


@dataclass
class ListenerState:
    session_id: str
    selected_language: str = "en"
    session_started: bool = False
    available_languages: list[str] = field(default_factory=list)
    current_transcription: str = ""
    current_translations: dict[str, str] = field(default_factory=dict)
    full_translations: dict[str, str] = field(default_factory=dict)
    phrase_completed: bool = False

    def apply(self, message: RelayMessage) -> Optional[PlaybackItem]:
        """Apply one relayed frame. Returns the item to speak when an utterance completes."""
        if message.session_id != self.session_id:
            return None
        if message.has("session_started"):
            self.session_started = bool(message.session_started)
        if message.has("languages"):
            self.available_languages = list(message.languages)
        if message.has("transcription"):
            self.current_transcription = message.transcription
        if message.has("translations"):
            self.current_translations = dict(message.translations)
        if message.has("full_translations"):
            append_delta(self.full_translations, {k: v for k, v in message.full_translations.items() if v})
        if not message.has("is_complete"):
            return None
        self.phrase_completed = bool(message.is_complete)
        if not message.is_complete:
            return None
        text = (message.translations or {}).get(self.selected_language)
        if not text:
            return None
        return PlaybackItem(text=text, language_code=self.selected_language)

    def load_snapshot(self, snapshot: SessionSnapshot) -> None:
        """Replace accumulated buffers with the durable snapshot (superset of what was missed)."""
        self.available_languages = list(snapshot.languages)
        self.full_translations = dict(snapshot.full_translations)

    @property
    def full_text(self) -> str:
        """Accumulated translation in the selected language (what a listener would download)."""
        return self.full_translations.get(self.selected_language, "")


async def fetch_snapshot(http: httpx.AsyncClient, session_id: str) -> Optional[SessionSnapshot]:
    """GET /api/session-data. None when the session does not exist."""
    response = await http.get("/api/session-data", params={"sessionId": session_id})
    if response.status_code == 404:
        return None
    response.raise_for_status()
    return SessionSnapshot.model_validate(response.json())


class Listener:
    def __init__(
        self,
        session_id: str,
        language: str = "en",
        settings: Settings | None = None,
        synthesize: Synthesize | None = None,
        http_client: httpx.AsyncClient | None = None,
        connect: ConnectFn | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.state = ListenerState(session_id=session_id, selected_language=language)
        self.queue = PlaybackQueue(synthesize or create_speech_output(settings))
        self._http = http_client or httpx.AsyncClient(base_url=settings.CLIENT_HTTP_URL, timeout=10.0)
        self._owns_http = http_client is None
        self.client = RelayClient(
            settings.CLIENT_SERVER_URL,
            on_message=self._on_message,
            on_open=self._on_open,
            keepalive_seconds=settings.CLIENT_KEEPALIVE_SECONDS,
            reconnect_delay_seconds=settings.CLIENT_RECONNECT_DELAY_SECONDS,
            connect=connect,
        )

    def _on_message(self, message: RelayMessage) -> None:
        item = self.state.apply(message)
        if item is not None:
            self.queue.enqueue(item)

    async def _on_open(self) -> None:
        if self.client.connect_count > 1:
            # Frames relayed while disconnected are gone; the snapshot restores the buffers.
            await self.bootstrap()
        await self.client.send(RelayMessage(session_id=self.state.session_id))

    def select_language(self, language_code: str) -> None:
        """Switch playback language. Already queued items keep their own language."""
        self.state.selected_language = language_code

    async def bootstrap(self) -> bool:
        """Load the session snapshot. Returns False if the session is unknown or the API is unreachable."""
        try:
            snapshot = await fetch_snapshot(self._http, self.state.session_id)
        except httpx.HTTPError as e:
            logger.warning("Snapshot fetch failed for session %s: %s", self.state.session_id, e)
            return False
        if snapshot is None:
            logger.info("Session %s has no snapshot yet", self.state.session_id)
            return False
        self.state.load_snapshot(snapshot)
        return True

    async def run(self) -> None:
        await self.bootstrap()
        await self.client.run()

    async def stop(self) -> None:
        await self.client.stop()
        await self.queue.close()
        if self._owns_http:
            await self._http.aclose()

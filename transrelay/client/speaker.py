"""
Speaker endpoint: turns recognition events from the external speech service
into relay frames for one session.

- interim result -> {transcription, translations, isComplete: false}
- final result   -> same plus fullTranslations (this utterance only; the relay appends it)
- start / stop   -> {sessionStarted, languages}
On every (re)connect the speaker re-announces languages and started flag,
since the relay never replays state to late joiners.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncIterator

import httpx

from transrelay.client.relay_client import ConnectFn, RelayClient
from transrelay.config import Settings, get_settings
from transrelay.schemas.message import RelayMessage

logger = logging.getLogger(__name__)


@dataclass
class RecognitionEvent:
    """One result from the speech service: source text plus per-language translations."""

    text: str
    translations: dict[str, str] = field(default_factory=dict)
    is_final: bool = False


class Recognizer(ABC):
    """External speech service contract (recognition + translation). Not implemented here."""

    @abstractmethod
    def recognize(self, audio: AsyncIterator[bytes]) -> AsyncIterator[RecognitionEvent]:
        """Consume an audio stream; yield interim and final results in order."""
        ...


class Speaker:
    def __init__(
        self,
        session_id: str,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        connect: ConnectFn | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.session_id = session_id
        self.languages: list[str] = []
        self.started = False
        self._http = http_client or httpx.AsyncClient(base_url=settings.CLIENT_HTTP_URL, timeout=10.0)
        self._owns_http = http_client is None
        self.client = RelayClient(
            settings.CLIENT_SERVER_URL,
            on_message=self._ignore,
            on_open=self._announce,
            keepalive_seconds=settings.CLIENT_KEEPALIVE_SECONDS,
            reconnect_delay_seconds=settings.CLIENT_RECONNECT_DELAY_SECONDS,
            connect=connect,
        )

    @staticmethod
    def _ignore(message: RelayMessage) -> None:
        # Listener join frames are relayed to the speaker too; nothing to do with them.
        return None

    async def _announce(self) -> None:
        if self.started:
            await self.client.send(
                RelayMessage(session_id=self.session_id, languages=self.languages, session_started=True)
            )

    async def create_session(self) -> None:
        """POST /api/create-session. Raises httpx.HTTPStatusError on a non-2xx reply."""
        response = await self._http.post("/api/create-session", json={"sessionId": self.session_id})
        response.raise_for_status()
        logger.info("Session %s created", self.session_id)

    async def start(self, languages: list[str]) -> bool:
        self.languages = list(languages)
        self.started = True
        return await self.client.send(
            RelayMessage(session_id=self.session_id, session_started=True, languages=self.languages)
        )

    async def stop(self) -> bool:
        self.started = False
        return await self.client.send(RelayMessage(session_id=self.session_id, session_started=False))

    async def publish(self, event: RecognitionEvent) -> bool:
        translations = {lang: t for lang, t in event.translations.items() if lang in self.languages and t}
        if not event.is_final:
            return await self.client.send(
                RelayMessage(
                    session_id=self.session_id,
                    transcription=event.text,
                    translations=translations,
                    is_complete=False,
                )
            )
        return await self.client.send(
            RelayMessage(
                session_id=self.session_id,
                transcription=event.text,
                translations=translations,
                full_translations=translations,
                is_complete=True,
            )
        )

    async def pump(self, recognizer: Recognizer, audio: AsyncIterator[bytes]) -> int:
        """Publish every recognition event; returns how many events were seen."""
        count = 0
        async for event in recognizer.recognize(audio):
            await self.publish(event)
            count += 1
        return count

    async def run(self) -> None:
        await self.client.run()

    async def close(self) -> None:
        await self.client.stop()
        if self._owns_http:
            await self._http.aclose()

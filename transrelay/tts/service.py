"""
TTS service: pick engine and player from config, and combine them into the
synthesize-then-play collaborator the playback queue drives.
- TTS_BACKEND: edge (Edge TTS) | none.
- AUDIO_PLAYER: pydub | none.
"""
from __future__ import annotations

import logging

from transrelay.config import Settings, get_settings
from transrelay.exceptions import SynthesisError
from transrelay.tts.base import AudioPlayer, TTSEngine
from transrelay.tts.edge_tts import EdgeTTSEngine
from transrelay.tts.player import NoOpAudioPlayer, PydubAudioPlayer

logger = logging.getLogger(__name__)


def get_tts_engine(settings: Settings | None = None) -> TTSEngine | None:
    """Return TTS engine from config (edge / none)."""
    settings = settings or get_settings()
    backend = (settings.TTS_BACKEND or "edge").strip().lower()
    if backend == "none":
        return None
    if backend == "edge":
        return EdgeTTSEngine(default_voice=settings.TTS_DEFAULT_VOICE, rate=settings.TTS_RATE)
    logger.warning("Unknown TTS_BACKEND=%s; use edge or none", backend)
    return None


def get_audio_player(settings: Settings | None = None) -> AudioPlayer:
    settings = settings or get_settings()
    if settings.AUDIO_PLAYER == "none":
        return NoOpAudioPlayer()
    return PydubAudioPlayer()


class SpeechOutput:
    """
    Synthesize then play one utterance. Returns only after playback has ended,
    which is the completion signal the playback queue waits for.
    """

    def __init__(self, engine: TTSEngine | None, player: AudioPlayer) -> None:
        self._engine = engine
        self._player = player

    async def __call__(self, text: str, language_code: str) -> None:
        if self._engine is None:
            logger.info("TTS disabled; skipping utterance (%d chars, %s)", len(text), language_code)
            return
        audio, mime = await self._engine.synthesize(text, language_code)
        if not audio:
            raise SynthesisError(f"no audio for {len(text)} chars in {language_code!r}")
        await self._player.play(audio, mime)


def create_speech_output(settings: Settings | None = None) -> SpeechOutput:
    settings = settings or get_settings()
    return SpeechOutput(get_tts_engine(settings), get_audio_player(settings))

"""
Audio players for listener playback.

PydubAudioPlayer decodes with pydub (ffmpeg) and plays through pydub.playback,
which blocks until the clip ends, so it runs in an executor thread.
"""
from __future__ import annotations

import asyncio
import io
import logging

from pydub import AudioSegment
from pydub.playback import play

from transrelay.tts.base import AudioPlayer

logger = logging.getLogger(__name__)

_FORMAT_BY_MIME = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
}


def _play_blocking(audio: bytes, fmt: str) -> None:
    segment = AudioSegment.from_file(io.BytesIO(audio), format=fmt)
    play(segment)


class PydubAudioPlayer(AudioPlayer):
    async def play(self, audio: bytes, mime_type: str) -> None:
        fmt = _FORMAT_BY_MIME.get((mime_type or "").lower(), "mp3")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _play_blocking, audio, fmt)


class NoOpAudioPlayer(AudioPlayer):
    """When playback is disabled (headless listener, tests). Discards audio."""

    async def play(self, audio: bytes, mime_type: str) -> None:
        logger.debug("Playback disabled; discarded %d bytes of %s", len(audio), mime_type)

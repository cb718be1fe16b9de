"""
TTS engine and audio player interfaces. Synthesis is an external collaborator:
text + language in, encoded audio out.
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class TTSEngine(ABC):
    """Abstract TTS. synthesize(text, language_code) returns (audio_bytes, mime_type)."""

    @abstractmethod
    async def synthesize(self, text: str, language_code: str) -> tuple[bytes, str]:
        """
        Convert text to speech in the voice for language_code. Returns (raw_audio_bytes, mime_type),
        e.g. (mp3_bytes, "audio/mpeg"). Empty bytes means nothing was produced.
        """
        ...

    @property
    @abstractmethod
    def format(self) -> str:
        """MIME type of output, e.g. 'audio/mpeg'."""
        ...


class AudioPlayer(ABC):
    """Plays encoded audio on the local output device; returns when playback has finished."""

    @abstractmethod
    async def play(self, audio: bytes, mime_type: str) -> None:
        ...

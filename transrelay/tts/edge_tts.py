"""
Edge TTS engine (Microsoft Edge online TTS). Free, no API key.
One neural voice per target language; long texts are split and the MP3 chunks joined.
"""
from __future__ import annotations

import logging
import re
import textwrap
from typing import Iterator, List

import edge_tts

from transrelay.tts.base import TTSEngine

logger = logging.getLogger(__name__)

DEFAULT_VOICE = "en-US-JennyNeural"

# Target-language code -> voice. Codes match the languages a speaker can select.
VOICE_BY_LANGUAGE = {
    "en": "en-US-JennyNeural",
    "fr": "fr-FR-DeniseNeural",
    "es": "es-ES-ElviraNeural",
    "de": "de-DE-KatjaNeural",
    "it": "it-IT-ElsaNeural",
    "zh": "zh-CN-XiaoxiaoNeural",
    "ja": "ja-JP-KeitaNeural",
    "ko": "ko-KR-SunHiNeural",
    "ar": "ar-SA-ZariyahNeural",
    "pt": "pt-PT-FernandaNeural",
    "ru": "ru-RU-SvetlanaNeural",
}

MAX_CHARS_PER_CHUNK = 800
_SENTENCE_END = re.compile(r"(?<=[.!?。！？])\s*")


def voice_for_language(language_code: str, default: str = DEFAULT_VOICE) -> str:
    """Map 'fr' or 'fr-CA' to a voice; unknown languages fall back to default."""
    code = (language_code or "").strip()
    if code in VOICE_BY_LANGUAGE:
        return VOICE_BY_LANGUAGE[code]
    base = code.split("-")[0].lower()
    return VOICE_BY_LANGUAGE.get(base, default)


def _text_pieces(text: str, max_chars: int) -> Iterator[str]:
    # Utterances first (one per line), then sentences, then word-wrapped runs.
    for line in text.splitlines():
        for sentence in _SENTENCE_END.split(line):
            sentence = sentence.strip()
            if len(sentence) > max_chars:
                yield from textwrap.wrap(sentence, max_chars)
            elif sentence:
                yield sentence


def _split_text_chunks(text: str, max_chars: int = MAX_CHARS_PER_CHUNK) -> List[str]:
    """Pack utterances and sentences into as few Edge requests as fit max_chars each."""
    chunks: List[str] = []
    for piece in _text_pieces(text or "", max_chars):
        if chunks and len(chunks[-1]) + 1 + len(piece) <= max_chars:
            chunks[-1] += " " + piece
        else:
            chunks.append(piece)
    return chunks


class EdgeTTSEngine(TTSEngine):
    """TTS via edge-tts. Output: MP3."""

    def __init__(self, default_voice: str | None = None, rate: str = "+0%") -> None:
        self._default_voice = (default_voice or DEFAULT_VOICE).strip() or DEFAULT_VOICE
        self._rate = rate

    @property
    def format(self) -> str:
        return "audio/mpeg"

    async def _synthesize_one(self, text: str, voice: str) -> bytes:
        """One Edge TTS request; raw MP3 bytes (empty on failure)."""
        communicate = edge_tts.Communicate(text.strip(), voice, rate=self._rate)
        chunks: List[bytes] = []
        try:
            async for chunk in communicate.stream():
                if isinstance(chunk, dict) and chunk.get("type") == "audio":
                    data = chunk.get("data")
                    if data:
                        chunks.append(data)
        except Exception as e:
            logger.error("Edge TTS stream failed (voice=%s): %s", voice, e)
            return b""
        out = b"".join(chunks)
        if not out:
            logger.warning("Edge TTS returned no audio for %d chars (voice=%s)", len(text), voice)
        return out

    async def synthesize(self, text: str, language_code: str) -> tuple[bytes, str]:
        if not (text or "").strip():
            return b"", self.format
        voice = voice_for_language(language_code, self._default_voice)
        all_bytes: List[bytes] = []
        for seg in _split_text_chunks(text):
            seg_audio = await self._synthesize_one(seg, voice)
            if not seg_audio:
                break
            all_bytes.append(seg_audio)
        return b"".join(all_bytes), self.format

"""
TTS: speech output for listener playback.

- edge: Edge TTS (free, Microsoft), one voice per target language.
- none: disable synthesis.
"""
from __future__ import annotations

from transrelay.tts.base import AudioPlayer, TTSEngine
from transrelay.tts.edge_tts import EdgeTTSEngine, voice_for_language
from transrelay.tts.player import NoOpAudioPlayer, PydubAudioPlayer
from transrelay.tts.service import SpeechOutput, create_speech_output, get_audio_player, get_tts_engine

__all__ = [
    "AudioPlayer",
    "TTSEngine",
    "EdgeTTSEngine",
    "voice_for_language",
    "NoOpAudioPlayer",
    "PydubAudioPlayer",
    "SpeechOutput",
    "create_speech_output",
    "get_audio_player",
    "get_tts_engine",
]

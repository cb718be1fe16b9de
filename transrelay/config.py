"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Relay server: WebSocket path and per-connection outbound buffer (frames).
    # When a listener's buffer is full new frames for it are dropped, never awaited.
    RELAY_WS_PATH: str = "/ws"
    RELAY_SEND_QUEUE_SIZE: int = 256

    # Durable session snapshots: "sqlite" survives restart, "memory" is for dev/tests.
    STORE_BACKEND: Literal["sqlite", "memory"] = "sqlite"
    STORE_SQLITE_PATH: str = "./history.db"

    # Comma-separated origins for the HTTP API (speaker/listener web frontends).
    CORS_ALLOW_ORIGINS: str = "http://localhost:5173"

    # Relay client (speaker + listener endpoints)
    CLIENT_SERVER_URL: str = "ws://localhost:8080/ws"
    CLIENT_HTTP_URL: str = "http://localhost:8080"
    CLIENT_KEEPALIVE_SECONDS: float = 30.0
    CLIENT_RECONNECT_DELAY_SECONDS: float = 5.0  # fixed delay, not exponential

    # TTS for listener playback: edge = Edge TTS, none = disable audio.
    TTS_BACKEND: str = "edge"
    TTS_DEFAULT_VOICE: str = "en-US-JennyNeural"  # used when a language has no mapped voice
    TTS_RATE: str = "+50%"  # speaking rate passed to edge-tts

    # Playback device: pydub = play through local output, none = discard audio.
    AUDIO_PLAYER: Literal["pydub", "none"] = "pydub"

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path empty = console only.
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ALLOW_ORIGINS.split(",") if o.strip()]


def get_settings() -> Settings:
    return Settings()

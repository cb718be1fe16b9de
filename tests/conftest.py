import pytest
from fastapi.testclient import TestClient

from transrelay.config import Settings
from transrelay.main import create_app
from transrelay.store import InMemorySessionStore


@pytest.fixture
def settings(tmp_path):
    return Settings(
        STORE_BACKEND="memory",
        STORE_SQLITE_PATH=str(tmp_path / "history.db"),
        TTS_BACKEND="none",
        AUDIO_PLAYER="none",
        CLIENT_SERVER_URL="ws://relay.test/ws",
        CLIENT_HTTP_URL="http://relay.test",
        CLIENT_KEEPALIVE_SECONDS=30.0,
        CLIENT_RECONNECT_DELAY_SECONDS=0.01,
    )


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def client(settings, store):
    app = create_app(settings=settings, store=store)
    with TestClient(app) as c:
        yield c

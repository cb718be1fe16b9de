"""
FastAPI app: WebSocket relay for live transcript/translation sessions;
HTTP API: create session and read the durable snapshot.

Endpoints send/receive one JSON object per WebSocket frame:
{ "sessionId": "...", "transcription"?, "translations"?, "fullTranslations"?,
  "languages"?, "sessionStarted"?, "isComplete"? }  or  { "type": "ping" }.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from transrelay.config import Settings, get_settings
from transrelay.exceptions import StoreError
from transrelay.logging_config import configure_logging
from transrelay.relay import RelayHub
from transrelay.schemas.session import CreateSessionRequest, CreateSessionResponse, SessionSnapshot
from transrelay.store import SessionStore, create_session_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(app.state.settings)
    logger.info(
        "Relay ready: ws=%s store=%s",
        app.state.settings.RELAY_WS_PATH,
        type(app.state.store).__name__,
    )
    yield
    await app.state.hub.close_all()
    await app.state.store.close()


async def relay_websocket(websocket: WebSocket) -> None:
    """
    WebSocket: every text frame is merged into its session and relayed to all
    other connections. Malformed frames are dropped; the connection stays open.
    """
    hub: RelayHub = websocket.app.state.hub
    await websocket.accept()
    conn = hub.register(websocket)
    try:
        while True:
            msg = await websocket.receive()
            if msg.get("type") == "websocket.disconnect":
                break
            data = msg.get("text")
            if data is None:
                data = msg.get("bytes")
            if data is None:
                continue
            await hub.handle_frame(conn, data)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.deregister(conn)


def create_app(settings: Settings | None = None, store: SessionStore | None = None) -> FastAPI:
    """Build the relay app. `store` overrides STORE_BACKEND (tests pass an in-memory store)."""
    settings = settings or get_settings()
    store = store or create_session_store(settings)

    app = FastAPI(
        title="Session Relay",
        description="Fan-out of live transcript/translation updates with durable session snapshots",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.hub = RelayHub(store, send_queue_size=settings.RELAY_SEND_QUEUE_SIZE)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_api_websocket_route(settings.RELAY_WS_PATH, relay_websocket)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "connections": app.state.hub.connection_count}

    @app.post("/api/create-session", status_code=201, response_model=CreateSessionResponse)
    async def create_session(request: CreateSessionRequest) -> CreateSessionResponse:
        """Create (or reset to empty) the record for a speaker-generated session id."""
        session_id = (request.session_id or "").strip()
        if not session_id:
            raise HTTPException(status_code=400, detail="Missing sessionId")
        try:
            await app.state.hub.create_session(session_id)
        except StoreError as e:
            logger.error("Create session failed: %s", e)
            raise HTTPException(status_code=500, detail="Database error")
        logger.info("Session created: %s", session_id)
        return CreateSessionResponse()

    @app.get("/api/session-data", response_model=SessionSnapshot, response_model_by_alias=True)
    async def session_data(session_id: str | None = Query(None, alias="sessionId")) -> SessionSnapshot:
        """Last accumulated buffers for a session; the catch-up path after a reconnect."""
        session_id = (session_id or "").strip()
        if not session_id:
            raise HTTPException(status_code=400, detail="Missing sessionId")
        try:
            record = await store.get(session_id)
        except StoreError as e:
            logger.error("Read session failed: %s", e)
            raise HTTPException(status_code=500, detail="Database error")
        if record is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return record.to_snapshot()

    return app


app = create_app()

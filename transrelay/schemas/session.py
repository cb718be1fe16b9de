"""Schemas for the session HTTP API (create + snapshot read)."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CreateSessionRequest(BaseModel):
    """Request body for POST /api/create-session. Id is generated by the speaker endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str | None = Field(None, alias="sessionId", description="New session id (opaque, untrusted)")


class CreateSessionResponse(BaseModel):
    message: str = "Session created successfully"


class SessionSnapshot(BaseModel):
    """Response body for GET /api/session-data: last accumulated buffers, not the live display state."""

    model_config = ConfigDict(populate_by_name=True)

    languages: list[str] = Field(default_factory=list)
    full_translations: dict[str, str] = Field(default_factory=dict, alias="fullTranslations")

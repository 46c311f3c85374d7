"""Request / response schemas and SSE framing for the HTTP surface."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel


class RealtimeSessionResponse(BaseModel):
    """Ephemeral credential for a browser realtime session."""

    client_secret: Any
    session_id: str


class ErrorResponse(BaseModel):
    error: str


def format_sse(event: dict[str, Any]) -> str:
    """Encode one event as a server-sent ``data:`` frame."""
    return f"data: {json.dumps(event)}\n\n"


def parse_voice_flag(value: str | None) -> bool:
    """Interpret the multipart ``voice`` field (``"true"`` / ``"false"``)."""
    return (value or "").strip().lower() == "true"

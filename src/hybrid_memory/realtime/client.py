"""Upstream realtime API client — ephemeral sessions, SDP exchange, WebSocket connect."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import InvalidHandshake

from hybrid_memory.config import Settings, settings
from hybrid_memory.errors import UpstreamAuthError, UpstreamTransportError

logger = logging.getLogger(__name__)

ERROR_BODY_LIMIT = 200


def _error_message(response: httpx.Response) -> str:
    """Best-effort extraction of the upstream error message."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:ERROR_BODY_LIMIT] or "Unknown error"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return error.get("message") or "Unknown error"
    return str(error or "Unknown error")


class RealtimeClient:
    """Talks to the upstream realtime API on behalf of browser clients.

    Parameters
    ----------
    api_key:
        Server-side API key; never sent to browsers.
    model:
        Realtime model name.
    voice:
        Voice preset for new sessions.
    instructions:
        System instructions for new sessions.
    base_url:
        HTTPS base URL of the API.
    ws_url:
        WebSocket URL of the realtime endpoint.
    timeout:
        Seconds allowed for each HTTP call and for the WebSocket handshake.
    http_client:
        Optional preconfigured ``httpx.AsyncClient`` (tests inject one
        backed by ``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        voice: str = "alloy",
        instructions: str = "",
        base_url: str = "https://api.openai.com/v1",
        ws_url: str = "wss://api.openai.com/v1/realtime",
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.model = model
        self.voice = voice
        self.instructions = instructions
        self.base_url = base_url.rstrip("/")
        self.ws_url = ws_url
        self.timeout = timeout
        self._api_key = api_key
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, config: Settings = settings) -> RealtimeClient:
        return cls(
            api_key=config.openai_api_key,
            model=config.realtime_model,
            voice=config.realtime_voice,
            instructions=config.realtime_instructions,
            base_url=config.realtime_base_url,
            ws_url=config.realtime_ws_url,
            timeout=config.realtime_connect_timeout,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    # -- HTTP -----------------------------------------------------------------

    async def create_session(self, conversation_id: str) -> dict[str, Any]:
        """Create an ephemeral client secret for a browser session.

        Raises
        ------
        UpstreamAuthError
            If the upstream rejects the server credential (401/403).
        UpstreamTransportError
            On any other upstream failure.
        """
        logger.info("Creating realtime client secret for: %s", conversation_id)
        try:
            response = await self._http.post(
                f"{self.base_url}/realtime/sessions",
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={
                    "model": self.model,
                    "voice": self.voice,
                    "instructions": self.instructions,
                },
            )
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"Realtime session request failed: {exc}") from exc

        if response.is_error:
            message = f"OpenAI API error: {_error_message(response)}"
            logger.error("Realtime session error (%d): %s", response.status_code, message)
            error_cls = UpstreamAuthError if response.status_code in (401, 403) else UpstreamTransportError
            raise error_cls(message, status_code=response.status_code)

        data = response.json()
        client_secret = data.get("client_secret")
        if client_secret is None:
            raise UpstreamTransportError("Realtime session response has no client_secret")
        logger.info("Realtime session created for: %s", conversation_id)
        return {"client_secret": client_secret, "session_id": conversation_id}

    async def exchange_sdp(self, offer: str) -> str:
        """Forward a WebRTC SDP offer and return the upstream's SDP answer.

        Raises
        ------
        ValueError
            If *offer* is empty.
        UpstreamTransportError
            If the upstream is unreachable or answers with an error; the
            message carries the status and the body truncated to 200 chars.
        """
        if not offer:
            raise ValueError("Missing SDP")
        logger.info("Sending SDP offer upstream (%d chars)", len(offer))
        try:
            response = await self._http.post(
                f"{self.base_url}/realtime/calls",
                params={"model": self.model},
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/sdp",
                },
                content=offer.encode("utf-8"),
            )
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"SDP exchange failed: {exc}") from exc

        body = response.text
        if response.is_error:
            logger.error("SDP exchange error (%d): %s", response.status_code, body[:500])
            raise UpstreamTransportError(
                f"OpenAI error ({response.status_code}): {body[:ERROR_BODY_LIMIT]}",
                status_code=response.status_code,
            )
        logger.info("SDP answer received (%d chars)", len(body))
        return body

    # -- WebSocket ------------------------------------------------------------

    async def connect(self, token: str) -> ClientConnection:
        """Open the upstream realtime WebSocket with *token* as bearer credential.

        Raises
        ------
        UpstreamAuthError
            If the upstream rejects the handshake.
        UpstreamTransportError
            If the handshake times out or the host is unreachable.
        """
        url = f"{self.ws_url}?model={self.model}"
        try:
            return await connect(
                url,
                additional_headers={"Authorization": f"Bearer {token}"},
                open_timeout=self.timeout,
            )
        except InvalidHandshake as exc:
            raise UpstreamAuthError(f"OpenAI connection rejected: {exc}") from exc
        except (OSError, TimeoutError, asyncio.TimeoutError) as exc:
            raise UpstreamTransportError(f"OpenAI connection error: {exc}") from exc

"""Bidirectional relay between a browser WebSocket and the upstream realtime API.

Lifecycle::

    IDLE ──auth frame──► AUTHENTICATING ──connected──► CONNECTED ──either side ends──► CLOSED
                               │
                               └──upstream rejects──► CLOSED

Frames are forwarded verbatim in both directions: text stays text, bytes
stay bytes, order is preserved.  Whichever side ends first, the other
side is closed too.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

import anyio

from hybrid_memory.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_SESSION_UPDATE: dict[str, Any] = {
    "type": "session.update",
    "session": {
        "type": "realtime",
        "modalities": ["text", "audio"],
    },
}


class RelayState(str, Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    CONNECTED = "connected"
    CLOSED = "closed"


class ClientSocket(Protocol):
    """The subset of Starlette's ``WebSocket`` the relay uses."""

    async def receive(self) -> dict[str, Any]: ...

    async def send_text(self, data: str) -> None: ...

    async def send_bytes(self, data: bytes) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


class UpstreamSocket(Protocol):
    """The subset of a ``websockets`` client connection the relay uses."""

    async def send(self, message: str | bytes) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


class _ClientDisconnected(Exception):
    pass


class RealtimeRelay:
    """Relay one browser session to the upstream realtime API.

    Parameters
    ----------
    client:
        Accepted browser WebSocket.
    connect:
        Coroutine factory opening the upstream connection for a token
        (normally :meth:`RealtimeClient.connect`).  Must raise
        :class:`~hybrid_memory.errors.UpstreamError` on failure.
    session_update:
        First frame sent upstream after the handshake.
    """

    def __init__(
        self,
        client: ClientSocket,
        connect: Callable[[str], Awaitable[UpstreamSocket]],
        *,
        session_update: dict[str, Any] | None = None,
    ) -> None:
        self._client = client
        self._connect = connect
        self._session_update = session_update or DEFAULT_SESSION_UPDATE
        self._upstream: UpstreamSocket | None = None
        self._client_closed = False
        self.state = RelayState.IDLE

    async def run(self) -> None:
        """Drive the relay until either side closes."""
        logger.info("Browser WebSocket connected")
        try:
            token = await self._await_auth()
            if token is None:
                return

            self.state = RelayState.AUTHENTICATING
            logger.info("Auth token received, connecting upstream...")
            try:
                self._upstream = await self._connect(token)
            except UpstreamError as exc:
                logger.error("Upstream connection failed: %s", exc)
                await self._send_client_json({"type": "error", "message": str(exc)})
                return

            try:
                await self._upstream.send(json.dumps(self._session_update))
            except Exception as exc:
                logger.error("Upstream session update failed: %s", exc)
                await self._send_client_json({"type": "error", "message": f"OpenAI connection error: {exc}"})
                return
            self.state = RelayState.CONNECTED
            logger.info("Upstream WebSocket authenticated")
            await self._send_client_json({"type": "connected"})

            await self._forward_both()
        finally:
            await self._teardown()

    # -- phases ---------------------------------------------------------------

    async def _await_auth(self) -> str | None:
        """Consume frames until a valid auth frame arrives; ``None`` if the client leaves."""
        while True:
            try:
                frame = await self._receive_client()
            except _ClientDisconnected:
                logger.info("Browser WebSocket closed before authenticating")
                return None
            if not isinstance(frame, str):
                logger.warning("Not ready to forward: binary frame before auth")
                continue
            try:
                data = json.loads(frame)
            except json.JSONDecodeError:
                logger.warning("Dropping malformed frame before auth")
                continue
            if isinstance(data, dict) and data.get("type") == "auth" and data.get("token"):
                return str(data["token"])
            logger.warning("Not ready to forward: %s", data.get("type") if isinstance(data, dict) else data)

    async def _forward_both(self) -> None:
        """Run both directions until either ends; the other is cancelled with it.

        Cancelling the caller cancels both directions as well, so no
        forwarding task outlives :meth:`run`.
        """
        async with anyio.create_task_group() as group:

            async def _direction(pump: Callable[[], Awaitable[None]], name: str, notify: bool) -> None:
                try:
                    await pump()
                except Exception as exc:
                    logger.error("Relay transport error (%s): %s", name, exc)
                    if notify:
                        await self._send_client_json(
                            {"type": "error", "message": f"OpenAI connection error: {exc}"}
                        )
                finally:
                    group.cancel_scope.cancel()

            group.start_soon(
                _direction, self._pump_client_to_upstream, "client-to-upstream", False,
                name="relay-client-to-upstream",
            )
            group.start_soon(
                _direction, self._pump_upstream_to_client, "upstream-to-client", True,
                name="relay-upstream-to-client",
            )

    async def _pump_client_to_upstream(self) -> None:
        assert self._upstream is not None
        while True:
            try:
                frame = await self._receive_client()
            except _ClientDisconnected:
                logger.info("Browser WebSocket closed")
                return
            await self._upstream.send(frame)

    async def _pump_upstream_to_client(self) -> None:
        assert self._upstream is not None
        async for message in self._upstream:
            if isinstance(message, bytes):
                await self._client.send_bytes(message)
            else:
                await self._client.send_text(message)
        logger.info("Upstream WebSocket closed")

    async def _teardown(self) -> None:
        self.state = RelayState.CLOSED
        if self._upstream is not None:
            try:
                await self._upstream.close()
            except Exception as exc:
                logger.debug("Upstream close raised: %s", exc)
        if not self._client_closed:
            self._client_closed = True
            try:
                await self._client.close()
            except RuntimeError as exc:
                logger.debug("Browser socket already closed: %s", exc)

    # -- helpers --------------------------------------------------------------

    async def _receive_client(self) -> str | bytes:
        message = await self._client.receive()
        if message.get("type") == "websocket.disconnect":
            self._client_closed = True
            raise _ClientDisconnected
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def _send_client_json(self, payload: dict[str, Any]) -> None:
        if self._client_closed:
            return
        try:
            await self._client.send_text(json.dumps(payload))
        except Exception as exc:
            logger.warning("Could not notify browser: %s", exc)

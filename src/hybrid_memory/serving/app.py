"""FastAPI application exposing the chat agent and the realtime voice relay."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, Form, Header, Request, UploadFile, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from starlette.requests import HTTPConnection

from hybrid_memory.config import settings
from hybrid_memory.errors import UpstreamAuthError, UpstreamError
from hybrid_memory.ingestion.pipeline import UploadedDocument
from hybrid_memory.realtime.relay import RealtimeRelay
from hybrid_memory.serving.container import ServiceContainer
from hybrid_memory.serving.orchestrator import ChatTurnRequest
from hybrid_memory.serving.schemas import (
    ErrorResponse,
    RealtimeSessionResponse,
    format_sse,
    parse_voice_flag,
)

logger = logging.getLogger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


def configure_logging(level: str = settings.log_level) -> None:
    """Configure root logging once at startup."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_services(conn: HTTPConnection) -> ServiceContainer:
    return conn.app.state.services


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Build the application.

    Parameters
    ----------
    services:
        Pre-built container (tests).  When *None*, required settings are
        validated and the production container is built on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if services is None:
            configure_logging()
            settings.validate_required()
            app.state.services = await ServiceContainer.from_settings(settings)
        else:
            app.state.services = services
        try:
            yield
        finally:
            await app.state.services.aclose()

    app = FastAPI(
        title="RAG Hybrid Memory API",
        version="1.0.0",
        description="Chat agent with conversation memory, document search and realtime voice.",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
        status = 502 if isinstance(exc, UpstreamAuthError) else 503
        logger.error("Upstream error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status, content=ErrorResponse(error=str(exc)).model_dump())

    # ── Routes ────────────────────────────────────────────────────────

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "RAG Hybrid Memory API is running!"

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.get("/realtime", response_model=RealtimeSessionResponse)
    async def realtime_session(
        conversationId: str = "default",  # noqa: N803
        services: ServiceContainer = Depends(get_services),
    ) -> RealtimeSessionResponse:
        """Issue a short-lived upstream credential for a browser voice session."""
        session = await services.realtime.create_session(conversationId)
        return RealtimeSessionResponse(**session)

    @app.post("/chat")
    async def chat(
        message: str = Form(...),
        userId: str = Form(...),  # noqa: N803
        voice: str | None = Form(None),
        documents: list[UploadFile] | None = File(None),
        x_session_id: str = Header(...),
        services: ServiceContainer = Depends(get_services),
    ) -> StreamingResponse:
        """Run one chat turn and stream the answer as server-sent events."""
        uploads = [
            UploadedDocument(filename=upload.filename or "document", payload=await upload.read())
            for upload in documents or []
        ]
        logger.info("Documents uploaded: %d", len(uploads))
        turn = ChatTurnRequest(
            session_id=x_session_id,
            user_id=userId,
            message=message,
            voice=parse_voice_flag(voice),
            documents=uploads,
        )

        async def event_stream() -> AsyncIterator[str]:
            async for event in services.orchestrator.stream_turn(turn):
                yield format_sse(event)

        return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)

    @app.post("/realtime-sdp")
    async def realtime_sdp(
        request: Request,
        services: ServiceContainer = Depends(get_services),
    ) -> Response:
        """Exchange a WebRTC SDP offer for the upstream's answer."""
        offer = (await request.body()).decode("utf-8", errors="replace")
        logger.info("SDP exchange request received (%d chars)", len(offer))
        try:
            answer = await services.realtime.exchange_sdp(offer)
        except (UpstreamError, ValueError) as exc:
            logger.error("SDP exchange error: %s", exc)
            return JSONResponse(status_code=500, content=ErrorResponse(error=str(exc)).model_dump())
        return Response(content=answer, media_type="application/sdp")

    @app.websocket("/realtime-ws")
    async def realtime_ws(
        websocket: WebSocket,
        services: ServiceContainer = Depends(get_services),
    ) -> None:
        """Proxy a browser realtime session to the upstream WebSocket."""
        await websocket.accept()
        relay = RealtimeRelay(websocket, services.realtime.connect)
        await relay.run()

    return app


app = create_app()

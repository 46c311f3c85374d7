"""Chat turn orchestration — ingestion, agent streaming, turn persistence.

One call to :meth:`ChatOrchestrator.stream_turn` handles one inbound chat
message:

(a) ingest attached documents, each independently;
(b) build the :class:`RuntimeRequestContext`;
(c) persist the user turn (detached);
(d) run the agent bound to the ``user:session`` thread;
(e) stream ``{"chunk": ...}`` events while accumulating the answer;
(f) persist the assistant turn (detached), optionally synthesise speech;
(g) emit the terminal ``{"done": true, "fullText": ..., "audio"?: ...}`` event.

Events are produced lazily: the agent is only advanced when the
transport pulls the next event, so nothing is buffered ahead of the
client.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Protocol

from hybrid_memory.agent.context import RuntimeRequestContext
from hybrid_memory.background import DetachedTasks
from hybrid_memory.ingestion.pipeline import IngestionPipeline, IngestResult, UploadedDocument
from hybrid_memory.retrieval.conversation_store import ConversationStore

logger = logging.getLogger(__name__)


class AgentStreamer(Protocol):
    def stream(
        self,
        message: str,
        context: RuntimeRequestContext,
        *,
        session_id: str,
    ) -> AsyncIterator[str]: ...


class Synthesizer(Protocol):
    async def synthesize(self, text: str) -> str: ...


@dataclass
class ChatTurnRequest:
    """Validated inbound chat message."""

    session_id: str
    user_id: str
    message: str
    voice: bool = False
    documents: list[UploadedDocument] = field(default_factory=list)


class ChatOrchestrator:
    """Binds ingestion, the agent and the conversation store along the request path.

    Parameters
    ----------
    pipeline:
        Document ingestion pipeline.
    conversations:
        Turn history store; writes are detached.
    agent:
        Streams answer tokens for a turn.
    speech:
        Optional text-to-speech; voice requests are answered without
        audio when it is absent.
    tasks:
        Registry for detached writes.
    """

    def __init__(
        self,
        *,
        pipeline: IngestionPipeline,
        conversations: ConversationStore,
        agent: AgentStreamer,
        speech: Synthesizer | None,
        tasks: DetachedTasks,
    ) -> None:
        self._pipeline = pipeline
        self._conversations = conversations
        self._agent = agent
        self._speech = speech
        self._tasks = tasks

    async def ingest_documents(self, request: ChatTurnRequest) -> list[IngestResult]:
        if not request.documents:
            return []
        return await asyncio.to_thread(self._pipeline.ingest_many, request.user_id, request.documents)

    async def stream_turn(self, request: ChatTurnRequest) -> AsyncIterator[dict[str, Any]]:
        """Yield the SSE events of one chat turn."""
        results = await self.ingest_documents(request)
        for result in results:
            logger.info("Document %s: %s", result.filename, result.status.value)

        logger.info("Chat request - user=%s session=%s", request.user_id, request.session_id)
        context = RuntimeRequestContext(
            user_id=request.user_id,
            exclude_session_id=request.session_id,
            query=request.message,
        )
        self._persist(request, "user", request.message)

        parts: list[str] = []
        try:
            async for token in self._agent.stream(request.message, context, session_id=request.session_id):
                parts.append(token)
                yield {"chunk": token}
        except Exception as exc:
            logger.exception("Agent stream failed for session=%s", request.session_id)
            yield {"error": str(exc) or type(exc).__name__, "done": True}
            return

        full_text = "".join(parts)
        if full_text:
            self._persist(request, "assistant", full_text)

        done: dict[str, Any] = {"done": True, "fullText": full_text}
        if request.voice and full_text:
            audio = await self._synthesize(full_text)
            if audio:
                done["audio"] = audio
        yield done

    # -- internals ------------------------------------------------------------

    def _persist(self, request: ChatTurnRequest, role: str, content: str) -> None:
        def _on_error(exc: BaseException) -> None:
            logger.warning("Error saving %s message (session=%s): %s", role, request.session_id, exc)

        self._tasks.spawn(
            asyncio.to_thread(
                self._conversations.append,
                request.session_id,
                request.user_id,
                role,
                content,
            ),
            name=f"save-{role}-message",
            on_error=_on_error,
        )

    async def _synthesize(self, text: str) -> str | None:
        if self._speech is None:
            logger.warning("Voice requested but no speech synthesizer configured")
            return None
        try:
            return await self._speech.synthesize(text)
        except Exception as exc:
            logger.error("TTS generation error: %s", exc)
            return None

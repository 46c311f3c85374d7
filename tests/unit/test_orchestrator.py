"""Unit tests for chat-turn orchestration (events, persistence, voice)."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator
from typing import Any

from hybrid_memory.agent.context import RuntimeRequestContext
from hybrid_memory.background import DetachedTasks
from hybrid_memory.errors import StoreWriteError
from hybrid_memory.ingestion.pipeline import IngestResult, IngestStatus, UploadedDocument
from hybrid_memory.serving.orchestrator import ChatOrchestrator, ChatTurnRequest


class FakeAgent:
    def __init__(
        self,
        tokens: list[str],
        *,
        fail_after: int | None = None,
        pipeline: FakePipeline | None = None,
    ) -> None:
        self.tokens = tokens
        self.fail_after = fail_after
        self.pipeline = pipeline
        self.calls: list[tuple[str, RuntimeRequestContext, str]] = []
        # Pipeline calls already made each time a stream started.
        self.ingested_at_start: list[int] = []

    async def stream(self, message: str, context: RuntimeRequestContext, *, session_id: str) -> AsyncIterator[str]:
        self.calls.append((message, context, session_id))
        if self.pipeline is not None:
            self.ingested_at_start.append(len(self.pipeline.calls))
        for i, token in enumerate(self.tokens):
            if self.fail_after is not None and i == self.fail_after:
                raise RuntimeError("model unavailable")
            yield token


class FakeConversations:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.rows: list[tuple[str, str, str, str]] = []
        self._lock = threading.Lock()

    def append(self, session_id: str, user_id: str, role: str, content: str) -> None:
        if self.fail:
            raise StoreWriteError("database is locked")
        with self._lock:
            self.rows.append((session_id, user_id, role, content))


class FakePipeline:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list[UploadedDocument]]] = []

    def ingest_many(self, user_id: str, documents: list[UploadedDocument]) -> list[IngestResult]:
        self.calls.append((user_id, documents))
        return [IngestResult(filename=d.filename, status=IngestStatus.STORED, chunk_count=1) for d in documents]


class FakeSpeech:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail

    async def synthesize(self, text: str) -> str:
        if self.fail:
            raise ConnectionError("tts down")
        return "QVVESU8="


def _run_turn(
    request: ChatTurnRequest,
    *,
    agent: FakeAgent,
    conversations: FakeConversations | None = None,
    pipeline: FakePipeline | None = None,
    speech: FakeSpeech | None = None,
) -> tuple[list[dict[str, Any]], FakeConversations]:
    conversations = conversations or FakeConversations()

    async def scenario() -> list[dict[str, Any]]:
        tasks = DetachedTasks()
        orchestrator = ChatOrchestrator(
            pipeline=pipeline or FakePipeline(),  # type: ignore[arg-type]
            conversations=conversations,  # type: ignore[arg-type]
            agent=agent,
            speech=speech,
            tasks=tasks,
        )
        events = [event async for event in orchestrator.stream_turn(request)]
        await tasks.drain()
        return events

    return asyncio.run(scenario()), conversations


def _request(**overrides: Any) -> ChatTurnRequest:
    values: dict[str, Any] = {"session_id": "s-1", "user_id": "alice", "message": "What are the limits?"}
    values.update(overrides)
    return ChatTurnRequest(**values)


class TestStreamTurn:
    def test_chunks_then_done(self) -> None:
        events, _ = _run_turn(_request(), agent=FakeAgent(["60 ", "per ", "minute."]))
        assert events == [
            {"chunk": "60 "},
            {"chunk": "per "},
            {"chunk": "minute."},
            {"done": True, "fullText": "60 per minute."},
        ]

    def test_context_built_from_request(self) -> None:
        agent = FakeAgent(["ok"])
        _run_turn(_request(), agent=agent)
        message, context, session_id = agent.calls[0]
        assert message == "What are the limits?"
        assert session_id == "s-1"
        assert context == RuntimeRequestContext(
            user_id="alice", exclude_session_id="s-1", query="What are the limits?"
        )

    def test_both_turns_persisted(self) -> None:
        _, conversations = _run_turn(_request(), agent=FakeAgent(["Answer."]))
        assert sorted(conversations.rows) == [
            ("s-1", "alice", "assistant", "Answer."),
            ("s-1", "alice", "user", "What are the limits?"),
        ]

    def test_store_failure_not_surfaced(self) -> None:
        events, _ = _run_turn(
            _request(), agent=FakeAgent(["Answer."]), conversations=FakeConversations(fail=True)
        )
        assert events[-1] == {"done": True, "fullText": "Answer."}

    def test_agent_failure_emits_error_frame(self) -> None:
        events, conversations = _run_turn(_request(), agent=FakeAgent(["partial", "never"], fail_after=1))
        assert events[0] == {"chunk": "partial"}
        assert events[-1] == {"error": "model unavailable", "done": True}
        assert [row[2] for row in conversations.rows] == ["user"]

    def test_documents_ingested_before_agent_runs(self) -> None:
        pipeline = FakePipeline()
        docs = [UploadedDocument("a.pdf", b"%PDF")]
        agent = FakeAgent(["ok"], pipeline=pipeline)
        _run_turn(_request(documents=docs), agent=agent, pipeline=pipeline)
        assert pipeline.calls == [("alice", docs)]
        assert agent.ingested_at_start == [1]

    def test_no_ingestion_without_documents(self) -> None:
        pipeline = FakePipeline()
        agent = FakeAgent(["ok"], pipeline=pipeline)
        _run_turn(_request(), agent=agent, pipeline=pipeline)
        assert agent.ingested_at_start == [0]


class TestVoice:
    def test_audio_attached_when_requested(self) -> None:
        events, _ = _run_turn(_request(voice=True), agent=FakeAgent(["Hi"]), speech=FakeSpeech())
        assert events[-1] == {"done": True, "fullText": "Hi", "audio": "QVVESU8="}

    def test_audio_omitted_when_not_requested(self) -> None:
        events, _ = _run_turn(_request(), agent=FakeAgent(["Hi"]), speech=FakeSpeech())
        assert "audio" not in events[-1]

    def test_tts_failure_omits_audio(self) -> None:
        events, _ = _run_turn(_request(voice=True), agent=FakeAgent(["Hi"]), speech=FakeSpeech(fail=True))
        assert events[-1] == {"done": True, "fullText": "Hi"}

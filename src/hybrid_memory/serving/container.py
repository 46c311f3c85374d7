"""Service container — adapters constructed once per process and shared.

Remote-service clients are built explicitly at startup and injected into
the components that need them; nothing is reconstructed per request.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field

from hybrid_memory.agent.checkpoint import open_checkpointer
from hybrid_memory.agent.graph import ChatAgent, build_graph
from hybrid_memory.agent.llm import get_llm, get_rewrite_llm
from hybrid_memory.agent.speech import SpeechSynthesizer
from hybrid_memory.agent.tools import build_tools
from hybrid_memory.background import DetachedTasks
from hybrid_memory.config import Settings
from hybrid_memory.ingestion.chunker import ChunkingConfig
from hybrid_memory.ingestion.embedder import Embedder
from hybrid_memory.ingestion.pipeline import IngestionPipeline
from hybrid_memory.realtime.client import RealtimeClient
from hybrid_memory.retrieval.base import DocumentStoreBase
from hybrid_memory.retrieval.conversation_store import ConversationStore
from hybrid_memory.retrieval.retriever import SemanticRetriever
from hybrid_memory.serving.orchestrator import ChatOrchestrator

logger = logging.getLogger(__name__)

DRAIN_TIMEOUT = 5.0


def check_document_store(documents: DocumentStoreBase) -> bool:
    """Log a warning when the document store is unreachable; startup continues either way."""
    healthy = documents.health_check()
    if not healthy:
        logger.warning("Document store is not reachable; search and ingestion will fail until it is")
    return healthy


@dataclass
class ServiceContainer:
    """Everything a request handler needs."""

    orchestrator: ChatOrchestrator
    realtime: RealtimeClient
    tasks: DetachedTasks
    resources: AsyncExitStack = field(default_factory=AsyncExitStack)

    @classmethod
    async def from_settings(cls, config: Settings) -> ServiceContainer:
        """Build the production object graph from *config*.

        Connections opened here (the checkpoint database) are released by
        :meth:`aclose`.
        """
        from hybrid_memory.retrieval.chroma_store import ChromaDocumentStore

        documents = ChromaDocumentStore(
            config.chroma_collection,
            host=config.chroma_host,
            port=config.chroma_port,
        )
        await asyncio.to_thread(check_document_store, documents)
        conversations = ConversationStore.from_url(config.database_url)
        conversations.create_schema()
        embedder = Embedder.from_settings(config)

        pipeline = IngestionPipeline(
            documents,
            embedder,
            ChunkingConfig(chunk_size=config.chunk_size, overlap=config.chunk_overlap),
        )
        tools = build_tools(
            conversations=conversations,
            retriever=SemanticRetriever(documents, embedder, default_k=config.search_top_k),
            rewrite_llm=get_rewrite_llm(config),
            history_limit=config.history_limit,
            search_top_k=config.search_top_k,
        )
        resources = AsyncExitStack()
        checkpointer = await open_checkpointer(config, resources)
        agent = ChatAgent(
            build_graph(
                get_llm(config),
                tools,
                last_messages=config.memory_last_messages,
                checkpointer=checkpointer,
            )
        )

        tasks = DetachedTasks()
        orchestrator = ChatOrchestrator(
            pipeline=pipeline,
            conversations=conversations,
            agent=agent,
            speech=SpeechSynthesizer.from_settings(config),
            tasks=tasks,
        )
        logger.info("Service container ready (chat model=%s)", config.chat_model)
        return cls(
            orchestrator=orchestrator,
            realtime=RealtimeClient.from_settings(config),
            tasks=tasks,
            resources=resources,
        )

    async def aclose(self) -> None:
        await self.tasks.drain(timeout=DRAIN_TIMEOUT)
        await self.realtime.aclose()
        await self.resources.aclose()

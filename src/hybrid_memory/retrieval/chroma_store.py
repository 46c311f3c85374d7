"""Chroma implementation of the document-store abstraction."""

from __future__ import annotations

import logging
from typing import Any

import chromadb

from hybrid_memory.config import settings
from hybrid_memory.errors import StoreReadError, StoreWriteError
from hybrid_memory.retrieval.base import DocumentStoreBase, check_chunk_rows
from hybrid_memory.retrieval.models import FILTER_OPERATORS, MetadataFilter, SearchHit

logger = logging.getLogger(__name__)


def build_where(filters: list[MetadataFilter]) -> dict[str, Any] | None:
    """Translate *filters* into a Chroma ``where`` document (``$and`` when several)."""
    for f in filters:
        if f.operator not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {f.operator!r}")
    clauses = [{f.field: {f"${f.operator}": f.value}} for f in filters]
    if not clauses:
        return None
    return clauses[0] if len(clauses) == 1 else {"$and": clauses}


def chunk_id(user_id: str, filename: str, chunk_index: int) -> str:
    """Deterministic Chroma id for one chunk row."""
    return f"{user_id}:{filename}:{chunk_index}"


class ChromaDocumentStore(DocumentStoreBase):
    """Chroma-backed document store using cosine distance.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    client:
        An existing Chroma client.  When *None*, an ``HttpClient`` is
        created for *host* / *port*.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    """

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        client: Any | None = None,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
    ) -> None:
        super().__init__(collection_name)
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
        self._collection = self._client.get_or_create_collection(
            collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    # -- DocumentStoreBase overrides ------------------------------------------

    def has_document(self, user_id: str, filename: str) -> bool:
        where = build_where(
            [MetadataFilter.equals("user_id", user_id), MetadataFilter.equals("filename", filename)]
        )
        try:
            existing = self._collection.get(where=where, limit=1, include=[])
        except Exception as exc:
            raise StoreReadError(f"Document lookup failed for {filename!r}: {exc}") from exc
        return bool(existing.get("ids"))

    def store_chunks(
        self,
        user_id: str,
        filename: str,
        chunks: list[str],
        embeddings: list[list[float]],
    ) -> None:
        check_chunk_rows(chunks, embeddings)
        if not chunks:
            return

        ids = [chunk_id(user_id, filename, i) for i in range(len(chunks))]
        metadatas = [
            {"user_id": user_id, "filename": filename, "chunk_index": i}
            for i in range(len(chunks))
        ]
        try:
            self._collection.add(
                ids=ids,
                embeddings=embeddings,
                documents=chunks,
                metadatas=metadatas,
            )
        except Exception as exc:
            raise StoreWriteError(f"Saving chunks for {filename!r} failed: {exc}") from exc
        logger.info("Stored %d chunk(s) for user=%s file=%s", len(chunks), user_id, filename)

    def search(self, user_id: str, query_embedding: list[float], top_k: int) -> list[SearchHit]:
        if top_k <= 0:
            return []
        where = build_where([MetadataFilter.equals("user_id", user_id)])
        try:
            results = self._collection.query(
                query_embeddings=[query_embedding],
                n_results=top_k,
                where=where,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise StoreReadError(f"Similarity search failed: {exc}") from exc

        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        hits: list[SearchHit] = []
        for content, meta, dist in zip(docs, metas, distances):
            # Cosine space: distance = 1 - cosine similarity.
            hits.append(SearchHit(content=content or "", score=1.0 - dist, metadata=dict(meta or {})))
        return hits[:top_k]

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

"""Semantic retriever — per-user document search with citation tracking.

Usage::

    retriever = SemanticRetriever(store, embedder)
    results = retriever.search("alice", "API rate limits quotas", k=5)
    for r in results:
        print(r.citation.label(), r.content[:80])
"""

from __future__ import annotations

import logging

from hybrid_memory.ingestion.embedder import Embedder
from hybrid_memory.retrieval.base import DocumentStoreBase
from hybrid_memory.retrieval.models import Citation, RetrievalResult, SearchHit

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """Embeds a query and delegates similarity search to the document store.

    Parameters
    ----------
    store:
        A concrete document-store backend.
    embedder:
        Embedding client used for the query vector.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score; results below this are discarded.
    """

    def __init__(
        self,
        store: DocumentStoreBase,
        embedder: Embedder,
        *,
        default_k: int = 5,
        score_threshold: float = 0.0,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self.default_k = default_k
        self.score_threshold = score_threshold

    def search(self, user_id: str, query: str, *, k: int | None = None) -> list[RetrievalResult]:
        """Run a semantic search over *user_id*'s documents.

        Raises
        ------
        EmbeddingServiceError
            If the query cannot be embedded.
        StoreReadError
            If the store search fails.
        """
        k = k or self.default_k
        embedding = self._embedder.embed_one(query)
        hits = self._store.search(user_id, embedding, k)
        results = self._to_results(hits)
        logger.info("search returned %d result(s) for user=%s", len(results), user_id)
        return results

    def _to_results(self, hits: list[SearchHit]) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for hit in hits:
            if hit.score < self.score_threshold:
                continue
            results.append(RetrievalResult(content=hit.content, citation=Citation.from_hit(hit)))
        return results


def format_results(results: list[RetrievalResult]) -> str:
    """Render results as numbered passages for the language model."""
    if not results:
        return "No relevant documents found."
    blocks = []
    for i, r in enumerate(results, 1):
        score = f"{r.citation.score:.3f}" if r.citation.score is not None else "n/a"
        blocks.append(f"[{i}] {r.citation.label()} (score {score})\n{r.content}")
    return "\n\n".join(blocks)

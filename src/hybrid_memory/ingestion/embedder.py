"""Embedding client — text to fixed-length vectors via the remote service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from langchain_openai import OpenAIEmbeddings

from hybrid_memory.config import Settings, settings
from hybrid_memory.errors import EmbeddingServiceError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embedding_function(config: Settings = settings) -> OpenAIEmbeddings:
    """Return the configured OpenAI embedding model.

    Retries are disabled: a failed call surfaces immediately as an
    :class:`EmbeddingServiceError` and the caller decides whether to retry.
    """
    return OpenAIEmbeddings(
        model=config.embedding_model,
        dimensions=config.embedding_dimensions,
        api_key=config.openai_api_key,
        chunk_size=config.embedding_batch_size,
        check_embedding_ctx_length=False,
        max_retries=0,
    )


class Embedder:
    """Single and batch embedding with shape guarantees.

    Parameters
    ----------
    embeddings:
        Any LangChain :class:`~langchain_core.embeddings.Embeddings`
        implementation (OpenAI in production, a fake in tests).
    dimensions:
        Expected vector length.  Every returned vector is checked against
        it so that single and batch calls always agree.
    batch_size:
        Maximum number of texts sent per remote call.
    """

    def __init__(self, embeddings: Embeddings, *, dimensions: int, batch_size: int = 100) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._embeddings = embeddings
        self.dimensions = dimensions
        self.batch_size = batch_size

    @classmethod
    def from_settings(cls, config: Settings = settings) -> Embedder:
        return cls(
            get_embedding_function(config),
            dimensions=config.embedding_dimensions,
            batch_size=config.embedding_batch_size,
        )

    # -- public API -----------------------------------------------------------

    def embed_one(self, text: str) -> list[float]:
        """Embed a single text."""
        try:
            vector = self._embeddings.embed_query(text)
        except Exception as exc:
            logger.warning("Embedding request failed: %s", exc)
            raise EmbeddingServiceError(f"Embedding request failed: {exc}") from exc
        return self._check_vector(vector)

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in order; the result has one vector per input."""
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            try:
                batch_vectors = self._embeddings.embed_documents(batch)
            except Exception as exc:
                logger.warning(
                    "Batch embedding request failed (batch %d): %s",
                    start // self.batch_size + 1,
                    exc,
                )
                raise EmbeddingServiceError(f"Batch embedding request failed: {exc}") from exc

            if len(batch_vectors) != len(batch):
                raise EmbeddingServiceError(
                    f"Embedding service returned {len(batch_vectors)} vectors "
                    f"for {len(batch)} inputs"
                )
            vectors.extend(self._check_vector(v) for v in batch_vectors)
            logger.debug("Embedded batch %d (%d texts)", start // self.batch_size + 1, len(batch))
        return vectors

    # -- internals ------------------------------------------------------------

    def _check_vector(self, vector: list[float]) -> list[float]:
        if len(vector) != self.dimensions:
            raise EmbeddingServiceError(
                f"Expected {self.dimensions}-dimensional embedding, got {len(vector)}"
            )
        return list(vector)

"""Abstract base class for document-store backends.

Adding a new backend (pgvector, Pinecone, Qdrant …) only requires
subclassing :class:`DocumentStoreBase` and implementing the abstract
methods.  Similarity search itself always runs inside the backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from hybrid_memory.retrieval.models import SearchHit


class DocumentStoreBase(ABC):
    """Backend-agnostic store for per-user document chunks.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / table / namespace.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    @abstractmethod
    def has_document(self, user_id: str, filename: str) -> bool:
        """Return ``True`` when at least one chunk exists for (*user_id*, *filename*).

        Raises
        ------
        StoreReadError
            If the backend cannot be queried.
        """
        ...

    @abstractmethod
    def store_chunks(
        self,
        user_id: str,
        filename: str,
        chunks: list[str],
        embeddings: list[list[float]],
    ) -> None:
        """Persist one row per chunk, ``chunk_index`` equal to its position.

        Raises
        ------
        ValueError
            If ``len(chunks) != len(embeddings)``.
        StoreWriteError
            If the backend rejects the write.
        """
        ...

    @abstractmethod
    def search(self, user_id: str, query_embedding: list[float], top_k: int) -> list[SearchHit]:
        """Return at most *top_k* of *user_id*'s chunks, most similar first.

        An empty list means "no matches"; backend failures raise
        :class:`~hybrid_memory.errors.StoreReadError` instead.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...


def check_chunk_rows(chunks: list[str], embeddings: list[list[float]]) -> None:
    """Shared precondition for :meth:`DocumentStoreBase.store_chunks`."""
    if len(chunks) != len(embeddings):
        raise ValueError(
            f"chunks and embeddings must have the same length "
            f"({len(chunks)} != {len(embeddings)})"
        )

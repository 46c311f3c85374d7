"""
Retrieval — document-store and conversation-store adapters.

Similarity search and persistence are delegated to external stores; this
package only wraps them behind interfaces the agent tools can use.

Public surface
--------------
- :class:`SemanticRetriever` — query embedding + per-user document search.
- :class:`DocumentStoreBase` — abstract backend (subclass for pgvector, etc.).
- :class:`ChromaDocumentStore` — default Chroma backend.
- :class:`ConversationStore` — SQLAlchemy-backed turn history.
- :class:`Citation`, :class:`RetrievalResult`, :class:`SearchHit`,
  :class:`MetadataFilter` — data models.
"""

from hybrid_memory.retrieval.base import DocumentStoreBase
from hybrid_memory.retrieval.conversation_store import ConversationStore, ConversationTurn
from hybrid_memory.retrieval.models import Citation, MetadataFilter, RetrievalResult, SearchHit
from hybrid_memory.retrieval.retriever import SemanticRetriever

__all__ = [
    "Citation",
    "ChromaDocumentStore",
    "ConversationStore",
    "ConversationTurn",
    "DocumentStoreBase",
    "MetadataFilter",
    "RetrievalResult",
    "SearchHit",
    "SemanticRetriever",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaDocumentStore to avoid pulling in chromadb at import time."""
    if name == "ChromaDocumentStore":
        from hybrid_memory.retrieval.chroma_store import ChromaDocumentStore

        return ChromaDocumentStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

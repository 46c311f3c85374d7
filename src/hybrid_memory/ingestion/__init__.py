"""
Ingestion — turning uploaded documents into embedded, stored chunks.

Extraction (PDF → text), fixed-window chunking and batch embedding are
kept as separate leaves; :mod:`hybrid_memory.ingestion.pipeline` wires
them to a document store.
"""

from hybrid_memory.ingestion.chunker import ChunkingConfig, chunk_text
from hybrid_memory.ingestion.embedder import Embedder
from hybrid_memory.ingestion.extractor import extract_text

__all__ = ["ChunkingConfig", "Embedder", "chunk_text", "extract_text"]

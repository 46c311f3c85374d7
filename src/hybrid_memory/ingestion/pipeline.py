"""Per-document ingestion: check → extract → chunk → embed → store.

Every document ends in exactly one terminal state:

* ``skipped`` — the user already has chunks stored under this filename;
* ``stored``  — all chunks were embedded and written;
* ``failed``  — any step raised; the error is logged and recorded.

Documents in one request are processed sequentially and independently:
a failure never prevents the next document from being processed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from hybrid_memory.errors import (
    EmbeddingServiceError,
    ExtractionError,
    StoreReadError,
    StoreWriteError,
)
from hybrid_memory.ingestion.chunker import ChunkingConfig, chunk_text
from hybrid_memory.ingestion.embedder import Embedder
from hybrid_memory.ingestion.extractor import extract_text
from hybrid_memory.retrieval.base import DocumentStoreBase

logger = logging.getLogger(__name__)


class IngestStatus(str, Enum):
    SKIPPED = "skipped"
    STORED = "stored"
    FAILED = "failed"


@dataclass
class UploadedDocument:
    """Raw upload as received from the client."""

    filename: str
    payload: bytes


@dataclass
class IngestResult:
    """Outcome of ingesting one document.

    Attributes
    ----------
    filename:
        Name the document was uploaded under.
    status:
        Terminal state of the document.
    chunk_count:
        Number of chunks written (0 unless ``stored``).
    error:
        Failure description when ``status`` is ``failed``.
    """

    filename: str
    status: IngestStatus
    chunk_count: int = 0
    error: str | None = None


class IngestionPipeline:
    """Coordinate extraction, chunking, embeddings, and persistence.

    Parameters
    ----------
    store:
        Document-store backend receiving the chunks.
    embedder:
        Embedding client used for the batch call.
    chunking:
        Window parameters; defaults to 300 characters with 60 overlap.
    """

    def __init__(
        self,
        store: DocumentStoreBase,
        embedder: Embedder,
        chunking: ChunkingConfig | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.chunking = chunking or ChunkingConfig()

    def ingest(self, user_id: str, filename: str, payload: bytes) -> IngestResult:
        """Run one document through the pipeline; never raises for step failures."""
        try:
            if self.store.has_document(user_id, filename):
                logger.info("Document %s already exists for user %s, skipping", filename, user_id)
                return IngestResult(filename=filename, status=IngestStatus.SKIPPED)

            logger.info("Processing uploaded document: %s (%d bytes)", filename, len(payload))
            text = extract_text(payload)
            logger.info("Extracted text length for %s: %d characters", filename, len(text))

            chunks = [
                c
                for c in chunk_text(text, self.chunking.chunk_size, self.chunking.overlap)
                if c
            ]
            if not chunks:
                raise ExtractionError("Document contains no extractable text")
            logger.info("Created %d text chunk(s) from %s", len(chunks), filename)

            embeddings = self.embedder.embed_many(chunks)
            logger.info("Generated embeddings for %d chunk(s)", len(embeddings))

            self.store.store_chunks(user_id, filename, chunks, embeddings)
        except (ExtractionError, EmbeddingServiceError, StoreReadError, StoreWriteError) as exc:
            logger.error("Error processing document %s: %s", filename, exc)
            return IngestResult(filename=filename, status=IngestStatus.FAILED, error=str(exc))
        except Exception as exc:
            logger.exception("Unexpected error processing document %s", filename)
            return IngestResult(filename=filename, status=IngestStatus.FAILED, error=str(exc))

        logger.info("Stored document chunks and embeddings for %s", filename)
        return IngestResult(filename=filename, status=IngestStatus.STORED, chunk_count=len(chunks))

    def ingest_many(self, user_id: str, documents: list[UploadedDocument]) -> list[IngestResult]:
        """Ingest *documents* one after another, isolating failures."""
        logger.info("%d document(s) uploaded for processing", len(documents))
        return [self.ingest(user_id, doc.filename, doc.payload) for doc in documents]

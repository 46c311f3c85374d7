"""Data models for document-store queries and search results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

FILTER_OPERATORS = ("eq",)


class MetadataFilter(BaseModel):
    """One equality condition on stored chunk metadata."""

    field: str
    operator: str = "eq"
    value: Any = None

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="eq", value=value)


class SearchHit(BaseModel):
    """One ranked match returned by a document store.

    Attributes
    ----------
    content:
        Chunk text.
    score:
        Similarity score, higher is more similar.
    metadata:
        Stored chunk metadata (``user_id``, ``filename``, ``chunk_index``).
    """

    content: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class Citation(BaseModel):
    """Where a retrieved passage came from."""

    filename: str = "unknown"
    chunk_index: int | None = None
    score: float | None = None
    retrieved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_hit(cls, hit: SearchHit) -> Citation:
        return cls(
            filename=hit.metadata.get("filename", "unknown"),
            chunk_index=hit.metadata.get("chunk_index"),
            score=hit.score,
        )

    def label(self) -> str:
        """``filename#chunk`` (``#?`` when the chunk index is unknown)."""
        chunk = "?" if self.chunk_index is None else self.chunk_index
        return f"{self.filename}#{chunk}"


class RetrievalResult(BaseModel):
    """A retrieved passage together with its citation."""

    content: str
    citation: Citation

    def __str__(self) -> str:
        return f"[{self.citation.label()}] {self.content[:120]}"

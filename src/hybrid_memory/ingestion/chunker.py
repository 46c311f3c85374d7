"""Fixed-size, overlapping text chunking."""

from __future__ import annotations

from pydantic import BaseModel, model_validator

DEFAULT_CHUNK_SIZE = 300
DEFAULT_OVERLAP = 60


class ChunkingConfig(BaseModel):
    """Validated window parameters for :func:`chunk_text`.

    Attributes
    ----------
    chunk_size:
        Number of characters per window.
    overlap:
        Number of characters shared by consecutive windows.  Must be
        strictly smaller than ``chunk_size`` so that windows advance.
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: int = DEFAULT_OVERLAP

    @model_validator(mode="after")
    def _check_progress(self) -> ChunkingConfig:
        _validate_window(self.chunk_size, self.overlap)
        return self

    @property
    def step(self) -> int:
        return self.chunk_size - self.overlap


def _validate_window(chunk_size: int, overlap: int) -> None:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must be non-negative, got {overlap}")
    if overlap >= chunk_size:
        raise ValueError(
            f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
        )


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[str]:
    """Split *text* into overlapping fixed-size windows.

    Windows start every ``chunk_size - overlap`` characters; the last one
    is clipped to the end of the text.  Slice positions are computed on
    the raw text and each window is stripped afterwards.

    Parameters
    ----------
    text:
        Extracted document text.
    chunk_size:
        Maximum number of characters per chunk.
    overlap:
        Number of overlapping characters between consecutive chunks.

    Returns
    -------
    list[str]
        Chunks in document order; empty for empty input.

    Raises
    ------
    ValueError
        If ``overlap >= chunk_size`` (the window would never advance),
        ``chunk_size <= 0`` or ``overlap < 0``.
    """
    _validate_window(chunk_size, overlap)
    if not text:
        return []

    step = chunk_size - overlap
    length = len(text)
    chunks: list[str] = []
    start = 0
    while True:
        end = min(start + chunk_size, length)
        chunks.append(text[start:end].strip())
        if end >= length:
            break
        start += step
    return chunks

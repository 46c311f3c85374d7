"""Unit tests for PDF text extraction."""

from __future__ import annotations

import io
from types import SimpleNamespace

import pytest
from pypdf import PdfWriter

from hybrid_memory.errors import ExtractionError
from hybrid_memory.ingestion import extractor
from hybrid_memory.ingestion.extractor import extract_text


def _blank_pdf(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def test_extract_text_rejects_empty_payload() -> None:
    with pytest.raises(ExtractionError):
        extract_text(b"")


def test_extract_text_rejects_non_pdf() -> None:
    with pytest.raises(ExtractionError):
        extract_text(b"this is definitely not a pdf file")


def test_extract_text_blank_pages_yield_whitespace_only() -> None:
    """Pages without a text layer contribute empty strings joined by newlines."""
    text = extract_text(_blank_pdf(pages=3))
    assert text.strip() == ""


def test_extract_text_joins_pages_in_order(monkeypatch: pytest.MonkeyPatch) -> None:
    pages = [SimpleNamespace(extract_text=lambda: "p1"), SimpleNamespace(extract_text=lambda: "p2")]
    monkeypatch.setattr(extractor, "PdfReader", lambda stream: SimpleNamespace(pages=pages))

    assert extract_text(b"%PDF-1.4 two pages") == "p1\np2"


def test_extract_text_page_without_text_layer_keeps_position(monkeypatch: pytest.MonkeyPatch) -> None:
    pages = [
        SimpleNamespace(extract_text=lambda: "intro"),
        SimpleNamespace(extract_text=lambda: None),
        SimpleNamespace(extract_text=lambda: "outro"),
    ]
    monkeypatch.setattr(extractor, "PdfReader", lambda stream: SimpleNamespace(pages=pages))

    assert extract_text(b"%PDF-1.4 three pages") == "intro\n\noutro"

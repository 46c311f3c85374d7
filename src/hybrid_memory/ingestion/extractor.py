"""Plain-text extraction from uploaded PDF payloads."""

from __future__ import annotations

import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from hybrid_memory.errors import ExtractionError

logger = logging.getLogger(__name__)


def extract_text(payload: bytes) -> str:
    """Return the text of every page of the PDF in *payload*.

    Pages are joined with ``"\\n"`` in page order; a page without a text
    layer contributes an empty string.

    Raises
    ------
    ExtractionError
        If *payload* is empty or is not a well-formed PDF.
    """
    if not payload:
        raise ExtractionError("Empty document payload")

    try:
        reader = PdfReader(io.BytesIO(payload))
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as exc:
        raise ExtractionError(f"Not a readable PDF: {exc}") from exc
    except Exception as exc:  # pypdf raises assorted errors on corrupt streams
        raise ExtractionError(f"Failed to extract text: {exc}") from exc

    logger.debug("Extracted %d page(s) from %d byte payload", len(pages), len(payload))
    return "\n".join(pages)

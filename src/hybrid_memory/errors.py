"""Error taxonomy shared by every layer of the service.

Ingestion errors are isolated per document, history and store errors
degrade to explanatory text, and upstream realtime errors are reported to
the caller.  Only :class:`ConfigurationError` is allowed to stop the
process, and only at startup.
"""

from __future__ import annotations


class HybridMemoryError(Exception):
    """Base class for all service errors."""


class ConfigurationError(HybridMemoryError):
    """Required configuration (credentials, limits) is missing or invalid."""


class ExtractionError(HybridMemoryError):
    """The uploaded payload is not a readable document."""


class EmbeddingServiceError(HybridMemoryError):
    """The embedding service failed or returned a malformed response."""


class HistoryUnavailableError(HybridMemoryError):
    """Conversation history could not be read."""


class StoreWriteError(HybridMemoryError):
    """A write to the document or conversation store failed."""


class StoreReadError(HybridMemoryError):
    """A read from the document store failed."""


class UpstreamError(HybridMemoryError):
    """Base class for failures talking to the upstream realtime API.

    Parameters
    ----------
    message:
        Human-readable description, safe to return to the client.
    status_code:
        HTTP status returned by the upstream, when there was one.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamAuthError(UpstreamError):
    """The upstream rejected the credential or the handshake."""


class UpstreamTransportError(UpstreamError):
    """The upstream was unreachable, timed out, or answered with an error."""

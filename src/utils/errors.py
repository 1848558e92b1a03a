"""Custom exception hierarchy for feedlens.

All application exceptions inherit from :class:`FeedLensError`, which
carries an optional ``provider_name`` so error handlers can identify which
backend (e.g. "openai", "chromadb", "sqlite_documents") caused the failure.

The hierarchy is organized by subsystem:

    FeedLensError  (base -- catch-all for any feedlens error)
    +-- ConfigurationError        (startup / missing config)
    +-- EmbeddingError            (one embedding backend failed)
    +-- IndexUnavailableError     (vector index unreachable)
    +-- VectorNotFoundError       (no index entry for an id)
    +-- DocumentStoreError        (document persistence failed)
    +-- DocumentNotFoundError     (no document for an id)
    +-- DocumentHasNoVectorError  (document was never embedded)
    +-- InvalidQueryError         (empty query / malformed filter)

``EmbeddingError`` never escapes the embedding fallback chain: the chain
recovers locally and only logs the degradation.  Everything else is
surfaced to the immediate caller.
"""


class FeedLensError(Exception):
    """Base exception for all feedlens errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which backend triggered the error.  The
    ``__str__`` method prefixes the provider name in brackets for structured
    log output, e.g. ``[chromadb] Connection refused``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ConfigurationError(FeedLensError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding / vector index errors
# ---------------------------------------------------------------------------

class EmbeddingError(FeedLensError):
    """Raised by a single embedding backend when it cannot produce a vector.

    The embedding service catches this to advance to the next backend in
    the fallback chain.
    """

    def __init__(
        self,
        message: str = "Embedding backend failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IndexUnavailableError(FeedLensError):
    """Raised when the vector index backend cannot be reached."""

    def __init__(
        self,
        message: str = "Vector index is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorNotFoundError(FeedLensError):
    """Raised when no index entry exists for the requested vector id."""

    def __init__(
        self,
        message: str = "Vector not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Document store errors
# ---------------------------------------------------------------------------

class DocumentStoreError(FeedLensError):
    """Raised when the document store cannot read or write a record."""

    def __init__(
        self,
        message: str = "Document store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentNotFoundError(FeedLensError):
    """Raised when a document id does not exist in the document store."""

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentHasNoVectorError(FeedLensError):
    """Raised when similarity browsing is requested for an unembedded document.

    Recoverable: callers should tell the end user that "more like this" is
    unavailable for the item rather than treating it as a server fault.
    """

    def __init__(
        self,
        message: str = "Document has no vector embedding",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Request validation errors
# ---------------------------------------------------------------------------

class InvalidQueryError(FeedLensError):
    """Raised for an empty search query or malformed filter bounds."""

    def __init__(
        self,
        message: str = "Invalid search query",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

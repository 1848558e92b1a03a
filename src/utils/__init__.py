"""Utility modules for feedlens.

- **errors** -- Exception hierarchy rooted at FeedLensError; each subsystem
  raises its own subclass and the API maps them to HTTP status codes.
- **concurrency** -- semaphore-throttled gather and a single-flight helper
  for one-time async initialisation (local model loading).
- **logging** -- structlog setup: coloured console output in development,
  JSON in production.
- **text_normalizer** -- embedding input preparation and the shared
  ``"{title} {body}"`` article text used for indexing and dedup.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    DocumentHasNoVectorError,
    DocumentNotFoundError,
    DocumentStoreError,
    EmbeddingError,
    FeedLensError,
    IndexUnavailableError,
    InvalidQueryError,
    VectorNotFoundError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import SingleFlight, throttled_gather

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Text preparation ------------------------------------------------------
from src.utils.text_normalizer import (
    article_body,
    build_article_text,
    prepare_embedding_text,
    strip_markup,
)

__all__ = [
    "ConfigurationError",
    "DocumentHasNoVectorError",
    "DocumentNotFoundError",
    "DocumentStoreError",
    "EmbeddingError",
    "FeedLensError",
    "IndexUnavailableError",
    "InvalidQueryError",
    "SingleFlight",
    "VectorNotFoundError",
    "article_body",
    "build_article_text",
    "configure_logging",
    "get_logger",
    "prepare_embedding_text",
    "strip_markup",
    "throttled_gather",
]

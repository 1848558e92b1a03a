"""feedlens API layer: routes, schemas, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    DuplicateCheckResponse,
    ErrorResponse,
    HealthResponse,
    SearchResponse,
    SimilarArticlesResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "DuplicateCheckResponse",
    "ErrorResponse",
    "HealthResponse",
    "SearchResponse",
    "SimilarArticlesResponse",
]

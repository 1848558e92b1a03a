"""feedlens FastAPI application entry point.

Wires together all providers and services via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and exposes the search/dedup/ingestion API.

Also provides :func:`build_services` so the CLI assembles exactly the
same embedding chain, index and store as the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import APP_VERSION
from src.api.routes import router as api_router
from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from src.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from src.providers.embedding.hash_embedding_provider import HashEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)
from src.providers.vector_store.chromadb_provider import ChromaDBProvider
from src.services.deduplication import DeduplicationGate
from src.services.embedding_service import EmbeddingService
from src.services.ingestion import IngestionService
from src.services.similarity_search import SimilaritySearchEngine
from src.utils.errors import ConfigurationError
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = load_config()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
    app_env=settings.app_env,
)
_logger: structlog.BoundLogger = get_logger(__name__)

_LOCAL_BACKENDS: dict[str, type] = {
    "sentence_transformers": SentenceTransformerEmbeddingProvider,
    "fastembed": FastEmbedEmbeddingProvider,
}


# ---------------------------------------------------------------------------
# Embedding chain
# ---------------------------------------------------------------------------


def _build_local_providers(app_settings: Settings) -> list[IEmbeddingProvider]:
    """Primary and secondary local models, in that order.

    Raises
    ------
    ConfigurationError
        If ``LOCAL_EMBEDDING_BACKEND`` names an unknown backend.
    """
    if not app_settings.local_embedding_enabled:
        return []

    provider_cls = _LOCAL_BACKENDS.get(app_settings.local_embedding_backend)
    if provider_cls is None:
        raise ConfigurationError(
            message=(
                f"Unknown LOCAL_EMBEDDING_BACKEND '{app_settings.local_embedding_backend}'; "
                f"expected one of {sorted(_LOCAL_BACKENDS)}"
            )
        )

    model_names = [app_settings.local_embedding_model]
    fallback_model = app_settings.local_embedding_fallback_model
    if fallback_model and fallback_model != app_settings.local_embedding_model:
        model_names.append(fallback_model)

    return [
        provider_cls(
            model_name=name,
            dimension=app_settings.embedding_dimension,
            cache_dir=app_settings.local_model_cache_dir or None,
        )
        for name in model_names
        if name
    ]


def _build_embedding_service(app_settings: Settings) -> EmbeddingService:
    """Assemble the remote → local → hash fallback chain.

    The remote tier is only added when an API key is configured; the hash
    tier is always last.
    """
    remote: IEmbeddingProvider | None = None
    if app_settings.openai_api_key:
        remote = OpenAIEmbeddingProvider(settings=app_settings)

    service = EmbeddingService(
        remote=remote,
        local=_build_local_providers(app_settings),
        fallback=HashEmbeddingProvider(app_settings.embedding_dimension),
        dimension=app_settings.embedding_dimension,
        max_chars=app_settings.embedding_max_chars,
        remote_timeout=app_settings.embedding_remote_timeout,
        concurrency=app_settings.ingest_concurrency,
    )
    _logger.info(
        "embedding_chain_configured",
        configured=app_settings.get_embedding_chain(),
        chain=service.get_chain(),
    )
    return service


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    One :class:`EmbeddingService` is shared by search, dedup and ingestion
    so a local model is loaded at most once per process.
    """
    embedding_service = _build_embedding_service(app_settings)

    vector_store = ChromaDBProvider(
        dimension=app_settings.embedding_dimension,
        collection_name=app_settings.chromadb_collection,
        persist_directory=app_settings.chromadb_persist_dir or None,
        host=app_settings.chromadb_host or None,
        port=app_settings.chromadb_port,
        ssl=app_settings.chromadb_ssl,
    )
    document_store = SQLiteDocumentStore(db_path=app_settings.document_db_path)

    search_engine = SimilaritySearchEngine(
        embedding_service=embedding_service,
        vector_store=vector_store,
        document_store=document_store,
        fetch_ceiling=app_settings.search_fetch_ceiling,
    )
    dedup_gate = DeduplicationGate(
        embedding_service=embedding_service,
        vector_store=vector_store,
        document_store=document_store,
        threshold=app_settings.dedup_threshold,
    )
    ingestion_service = IngestionService(
        embedding_service=embedding_service,
        vector_store=vector_store,
        document_store=document_store,
        dedup_gate=dedup_gate,
        concurrency=app_settings.ingest_concurrency,
    )

    return {
        "settings": app_settings,
        "embedding_service": embedding_service,
        "vector_store": vector_store,
        "document_store": document_store,
        "search_engine": search_engine,
        "dedup_gate": dedup_gate,
        "ingestion_service": ingestion_service,
    }


async def build_services(custom_settings: Settings | None = None) -> dict[str, Any]:
    """Build and initialise all components outside the web server (CLI, scripts)."""
    components = _build_all(custom_settings or settings)
    await components["document_store"].initialize()
    return components


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["document_store"].initialize()

    _logger.info(
        "app_startup",
        version=APP_VERSION,
        environment=settings.app_env,
        embedding_chain=components["embedding_service"].get_chain(),
        vector_index=components["vector_store"].get_provider_name(),
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="feedlens API",
        version=APP_VERSION,
        description=(
            "Semantic search, near-duplicate detection and ingestion for "
            "RSS articles, backed by a vector index and a document store."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )

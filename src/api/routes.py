"""FastAPI API routes for feedlens.

Thin adapters over the search engine, dedup gate and ingestion service.
Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                                 Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/search/query                     GET     Text search (query params)
# /api/v1/search/query                     POST    Text search (JSON body)
# /api/v1/articles/{document_id}/similar   GET     Articles like a stored one
# /api/v1/articles/duplicate-check         POST    Exact + semantic dedup check
# /api/v1/articles/ingest                  POST    Ingest a batch of raw articles
# /api/v1/ingest/status                    GET     Last ingestion run + embedder
# /api/v1/statistics                       GET     Article counts by source/category
# /api/v1/health                           GET     Health check + provider status
#
# Application errors are raised as FeedLensError subclasses and turned
# into JSON by ErrorHandlingMiddleware (src/api/middleware.py).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Query, Request

from src.api.schemas import (
    DuplicateCheckRequest,
    DuplicateCheckResponse,
    ErrorResponse,
    HealthResponse,
    IngestRequest,
    IngestStatusResponse,
    SearchConfig,
    SearchHit,
    SearchRequest,
    SearchResponse,
    SimilarArticlesResponse,
    StatisticsResponse,
)
from src.config.settings import Settings
from src.interfaces.document_store import IDocumentStore
from src.models.article import DuplicateCandidate, IngestionStats, SearchFilter
from src.services.deduplication import DeduplicationGate
from src.services.embedding_service import EmbeddingService
from src.services.ingestion import IngestionService
from src.services.similarity_search import SimilaritySearchEngine
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

APP_VERSION = "0.1.0"

_DEFAULT_MIN_SIMILARITY = 0.5
_DEFAULT_MAX_RESULTS = 10
_DEFAULT_RESULTS_CAP = 20

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_search_engine(request: Request) -> SimilaritySearchEngine:
    return request.app.state.search_engine


def _get_dedup_gate(request: Request) -> DeduplicationGate:
    return request.app.state.dedup_gate


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_embedding_service(request: Request) -> EmbeddingService:
    return request.app.state.embedding_service


def _get_document_store(request: Request) -> IDocumentStore:
    return request.app.state.document_store


SearchEngineDep = Annotated[SimilaritySearchEngine, Depends(_get_search_engine)]
DedupGateDep = Annotated[DeduplicationGate, Depends(_get_dedup_gate)]
IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
EmbeddingDep = Annotated[EmbeddingService, Depends(_get_embedding_service)]
DocumentStoreDep = Annotated[IDocumentStore, Depends(_get_document_store)]


def _build_filter(config: SearchConfig, request: Request) -> SearchFilter:
    """Fill unset values from settings and apply the result cap."""
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if settings is None:
        min_similarity, max_results, cap = (
            _DEFAULT_MIN_SIMILARITY,
            _DEFAULT_MAX_RESULTS,
            _DEFAULT_RESULTS_CAP,
        )
    else:
        min_similarity = settings.search_default_min_similarity
        max_results = settings.search_default_max_results
        cap = settings.search_max_results_cap

    if config.min_similarity is not None:
        min_similarity = config.min_similarity
    if config.limit is not None:
        max_results = config.limit

    return SearchFilter(
        date_from=config.date_from,
        date_to=config.date_to,
        source_id=config.source or None,
        category=config.category or None,
        min_similarity=min_similarity,
        max_results=min(max_results, cap),
        include_vectors=config.include_vectors,
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@router.get(
    "/search/query",
    response_model=SearchResponse,
    responses=_ERROR_RESPONSES,
    summary="Semantic search over stored articles",
)
async def search_query(
    request: Request,
    engine: SearchEngineDep,
    q: str = "",
    min_similarity: Annotated[float | None, Query(alias="minSimilarity", ge=0.0, le=1.0)] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
    date_from: Annotated[datetime | None, Query(alias="dateFrom")] = None,
    date_to: Annotated[datetime | None, Query(alias="dateTo")] = None,
    source: str | None = None,
    category: str | None = None,
    include_vectors: Annotated[bool, Query(alias="includeVectors")] = False,
) -> SearchResponse:
    """Rank stored articles by similarity to ``q``."""
    config = SearchConfig(
        min_similarity=min_similarity,
        limit=limit,
        date_from=date_from,
        date_to=date_to,
        source=source,
        category=category,
        include_vectors=include_vectors,
    )
    results = await engine.search_by_text(q, _build_filter(config, request))
    hits = [SearchHit.from_result(r) for r in results]
    return SearchResponse(query=q, results=hits, total=len(hits))


@router.post(
    "/search/query",
    response_model=SearchResponse,
    responses=_ERROR_RESPONSES,
    summary="Semantic search with a JSON body",
)
async def search_query_post(
    body: SearchRequest,
    request: Request,
    engine: SearchEngineDep,
) -> SearchResponse:
    results = await engine.search_by_text(
        body.query, _build_filter(body.config, request)
    )
    hits = [SearchHit.from_result(r) for r in results]
    return SearchResponse(query=body.query, results=hits, total=len(hits))


@router.get(
    "/articles/{document_id}/similar",
    response_model=SimilarArticlesResponse,
    responses=_ERROR_RESPONSES,
    summary="Articles similar to a stored article",
)
async def similar_articles(
    document_id: str,
    request: Request,
    engine: SearchEngineDep,
    min_similarity: Annotated[float | None, Query(alias="minSimilarity", ge=0.0, le=1.0)] = None,
    limit: Annotated[int, Query(ge=1)] = 5,
    include_vectors: Annotated[bool, Query(alias="includeVectors")] = False,
) -> SimilarArticlesResponse:
    """Return up to ``limit`` neighbours of *document_id*, excluding itself.

    404 when the document does not exist, 400 when it was stored without
    an embedding.
    """
    config = SearchConfig(
        min_similarity=min_similarity, limit=limit, include_vectors=include_vectors
    )
    results = await engine.search_similar_to(
        document_id, _build_filter(config, request)
    )
    hits = [SearchHit.from_result(r) for r in results]
    return SimilarArticlesResponse(document_id=document_id, results=hits, total=len(hits))


# ---------------------------------------------------------------------------
# Deduplication & ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/articles/duplicate-check",
    response_model=DuplicateCheckResponse,
    responses=_ERROR_RESPONSES,
    summary="Check whether an article is already stored",
)
async def duplicate_check(body: DuplicateCheckRequest, gate: DedupGateDep) -> DuplicateCheckResponse:
    candidate = DuplicateCandidate(
        title=body.title,
        body_text=body.body_text,
        guid=body.guid,
        link=body.link,
    )
    verdict = await gate.check_duplicate(candidate, threshold=body.threshold)
    score = verdict.similarity_score
    return DuplicateCheckResponse(
        is_duplicate=verdict.is_duplicate,
        matched_document_id=verdict.matched_document_id,
        similarity_score=round(score, 4) if score is not None else None,
    )


@router.post(
    "/articles/ingest",
    response_model=IngestionStats,
    summary="Ingest a batch of raw feed articles",
)
async def ingest_articles(body: IngestRequest, ingestion: IngestionDep) -> IngestionStats:
    """Run the batch through dedup, embedding, indexing and storage.

    Per-item failures are counted in the returned stats; the batch itself
    does not fail.
    """
    _logger.info("ingest_request", articles=len(body.articles))
    return await ingestion.ingest_batch(body.articles)


@router.get(
    "/ingest/status",
    response_model=IngestStatusResponse,
    summary="Statistics of the most recent ingestion run",
)
async def ingest_status(
    ingestion: IngestionDep,
    embedding: EmbeddingDep,
) -> IngestStatusResponse:
    return IngestStatusResponse(
        stats=ingestion.get_status(),
        embedding=embedding.get_status(),
    )


@router.get(
    "/statistics",
    response_model=StatisticsResponse,
    summary="Stored article counts per source and category",
)
async def corpus_statistics(document_store: DocumentStoreDep) -> StatisticsResponse:
    stats = await document_store.statistics()
    return StatisticsResponse(
        total_documents=stats.total_documents,
        sources=stats.sources,
        categories=stats.categories,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``degraded`` means the vector index is unreachable: ingestion still
    stores documents but search is unavailable.
    """
    providers: dict[str, Any] = {}

    vector_store = getattr(request.app.state, "vector_store", None)
    if vector_store is not None:
        try:
            providers["vector_index"] = True
            providers["indexed_vectors"] = await vector_store.count()
        except Exception:
            providers["vector_index"] = False
            providers["indexed_vectors"] = 0

    document_store = getattr(request.app.state, "document_store", None)
    if document_store is not None:
        try:
            providers["documents"] = await document_store.count()
            providers["document_store"] = True
        except Exception:
            providers["document_store"] = False

    embedding_service = getattr(request.app.state, "embedding_service", None)
    if embedding_service is not None:
        providers["embedding_chain"] = embedding_service.get_chain()
        providers["embedding_last_backend"] = embedding_service.last_backend

    if not providers.get("document_store", False):
        status = "unhealthy"
    elif not providers.get("vector_index", False):
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(status=status, version=APP_VERSION, providers=providers)

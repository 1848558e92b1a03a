"""Pydantic request/response schemas for the feedlens API.

Defines the public contract for the REST endpoints: text search, "more
like this", duplicate checks, batch ingestion, ingestion status, corpus
statistics and health.

Convention: request schemas end with "Request", response schemas end with
"Response".  Scores leave the API rounded to 4 decimals; the services work
at full precision.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.article import IngestionStats, LabelCount, RawArticle, SearchResult

SCORE_DECIMALS = 4


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class SearchConfig(BaseModel):
    """Search tuning accepted in the POST body; mirrors the GET query params.

    Unset values fall back to the configured search defaults.
    """

    min_similarity: float | None = Field(default=None, ge=0.0, le=1.0, alias="minSimilarity")
    limit: int | None = Field(default=None, ge=1, alias="maxResults")
    date_from: datetime | None = Field(default=None, alias="dateFrom")
    date_to: datetime | None = Field(default=None, alias="dateTo")
    source: str | None = None
    category: str | None = None
    include_vectors: bool = Field(default=False, alias="includeVectors")

    model_config = ConfigDict(populate_by_name=True)


class SearchRequest(BaseModel):
    """Free-text semantic search."""

    query: str = Field(default="", max_length=2000)
    config: SearchConfig = Field(default_factory=SearchConfig)


class SearchHit(BaseModel):
    """A single ranked article."""

    document_id: str
    score: float
    title: str
    link: str
    source_id: str
    published_at: datetime
    categories: list[str]
    description: str = ""
    vector: list[float] | None = None

    @classmethod
    def from_result(cls, result: SearchResult) -> SearchHit:
        doc = result.document
        return cls(
            document_id=result.document_id,
            score=round(result.score, SCORE_DECIMALS),
            title=doc.title,
            link=doc.link,
            source_id=doc.source_id,
            published_at=doc.published_at,
            categories=sorted(doc.categories),
            description=doc.description or doc.body_text,
            vector=result.vector,
        )


class SearchResponse(BaseModel):
    """Ranked results for a text query."""

    query: str
    results: list[SearchHit]
    total: int


class SimilarArticlesResponse(BaseModel):
    """Articles similar to a stored article (never including it)."""

    document_id: str
    results: list[SearchHit]
    total: int


# ---------------------------------------------------------------------------
# Deduplication / ingestion
# ---------------------------------------------------------------------------


class DuplicateCheckRequest(BaseModel):
    """An incoming article to test against the stored corpus."""

    title: str = ""
    body_text: str = ""
    guid: str = ""
    link: str = ""
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class DuplicateCheckResponse(BaseModel):
    """Result of the two-tier duplicate check."""

    is_duplicate: bool
    matched_document_id: str | None = None
    similarity_score: float | None = None


class IngestRequest(BaseModel):
    """A batch of raw feed articles, ingested in order."""

    articles: list[RawArticle] = Field(..., max_length=1000)


class StatisticsResponse(BaseModel):
    """Stored article counts, per source and per category."""

    total_documents: int
    sources: list[LabelCount]
    categories: list[LabelCount]


class IngestStatusResponse(BaseModel):
    """Most recent ingestion run plus the embedding chain's state."""

    stats: IngestionStats
    embedding: dict[str, Any]

"""Article, index and search data models for feedlens.

Defines Pydantic v2 models for the records that cross component
boundaries: the ingested :class:`Document`, the vector-index
:class:`IndexEntry` / :class:`VectorMatch`, the :class:`SearchFilter` and
:class:`SearchResult` pair, and the :class:`DuplicateVerdict` produced by
the ingestion gate.  All models are frozen.

Lifecycle overview:

    1. INGESTION: a :class:`RawArticle` arrives from the feed layer.
    2. DEDUP: the gate returns a :class:`DuplicateVerdict`; duplicates stop here.
    3. EMBEDDING: article text becomes an :class:`EmbeddingResult`.
    4. STORAGE: an :class:`IndexEntry` goes to the vector index and a
       :class:`Document` (carrying its ``vector_id``) to the document store.
       If step 3/4 fails the Document is still stored, with
       ``vector_id=None``; that is a valid partial-success state.
    5. SEARCH: the engine joins :class:`VectorMatch` rows back to Documents
       and returns ranked :class:`SearchResult` objects.

Timestamps are normalised to timezone-aware UTC so that date filters can
compare values from feeds, query strings and the database safely.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MetadataValue = Union[str, int, float]


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Embedding / vector index records
# ---------------------------------------------------------------------------
class EmbeddingResult(BaseModel):
    """A vector together with the backend tier that produced it."""

    model_config = ConfigDict(frozen=True)

    vector: list[float] = Field(description="Embedding vector of the configured dimension.")
    backend: str = Field(description='Backend that served the request, e.g. "hash_fallback".')


class IndexEntry(BaseModel):
    """A stored vector with its metadata, owned by the vector index."""

    model_config = ConfigDict(frozen=True)

    id: str
    vector: list[float]
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)


class VectorMatch(BaseModel):
    """One k-NN query row: an index id and its cosine distance to the query."""

    model_config = ConfigDict(frozen=True)

    id: str
    distance: float = Field(description="1 - cosine similarity; 0.0 means identical direction.")
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)

    @property
    def similarity(self) -> float:
        """Cosine similarity clamped to [0, 1]."""
        return max(0.0, min(1.0, 1.0 - self.distance))


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------
class RawArticle(BaseModel):
    """An article as delivered by the feed layer, before ingestion."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    content: str = ""
    link: str = ""
    guid: str = ""
    pub_date: datetime | None = None
    source_id: str
    categories: list[str] = Field(default_factory=list)
    author: str = ""

    @field_validator("pub_date")
    @classmethod
    def _normalise_pub_date(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @model_validator(mode="before")
    @classmethod
    def _guid_defaults_to_link(cls, data: Any) -> Any:
        # Many feeds omit <guid>; the link is the next best stable key.
        if isinstance(data, dict) and not data.get("guid") and data.get("link"):
            data = {**data, "guid": data["link"]}
        return data


class Document(BaseModel):
    """An ingested article record, keyed by a stable ``document_id``.

    ``vector_id`` is a weak reference into the vector index.  ``None`` means
    the article was never embedded and is invisible to similarity search.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    source_id: str
    title: str
    body_text: str = ""
    published_at: datetime
    categories: frozenset[str] = Field(default_factory=frozenset)
    vector_id: str | None = None
    link: str = ""
    guid: str = ""
    description: str = ""
    content: str = ""
    author: str = ""
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("published_at", "created_at")
    @classmethod
    def _normalise_timestamps(cls, value: datetime) -> datetime:
        return ensure_utc(value)  # type: ignore[return-value]

    @property
    def has_vector(self) -> bool:
        return bool(self.vector_id)


class DuplicateCandidate(BaseModel):
    """The fields of an incoming article that the dedup gate inspects."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    body_text: str = ""
    guid: str = ""
    link: str = ""


class DuplicateVerdict(BaseModel):
    """Outcome of a duplicate check."""

    model_config = ConfigDict(frozen=True)

    is_duplicate: bool
    matched_document_id: str | None = None
    similarity_score: float | None = Field(default=None, ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
class SearchFilter(BaseModel):
    """Post-retrieval constraints applied by the similarity search engine.

    Date bounds are inclusive.  Bound ordering (``date_from <= date_to``)
    is checked by the engine so that it surfaces as an ``InvalidQueryError``
    before any embedding work, not as a model validation error.
    """

    model_config = ConfigDict(frozen=True)

    date_from: datetime | None = None
    date_to: datetime | None = None
    source_id: str | None = None
    category: str | None = None
    min_similarity: float = Field(default=0.5, ge=0.0, le=1.0)
    max_results: int = Field(default=10, gt=0)
    include_vectors: bool = False

    @field_validator("date_from", "date_to")
    @classmethod
    def _normalise_bounds(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)


class SearchResult(BaseModel):
    """A ranked search hit: the document and its similarity to the query.

    ``vector`` is the indexed embedding, filled only when the filter asks
    for ``include_vectors``.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    score: float = Field(ge=0.0, le=1.0)
    document: Document
    vector: list[float] | None = None


class LabelCount(BaseModel):
    """A name and how many stored articles carry it."""

    model_config = ConfigDict(frozen=True)

    name: str
    count: int = Field(ge=0)


class CorpusStatistics(BaseModel):
    """Article counts per source and per category, largest first."""

    model_config = ConfigDict(frozen=True)

    total_documents: int = Field(ge=0)
    sources: list[LabelCount] = Field(default_factory=list)
    categories: list[LabelCount] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------
class IngestionStatus(str, Enum):
    """Per-article ingestion outcome."""

    STORED = "stored"
    STORED_WITHOUT_VECTOR = "stored_without_vector"
    DUPLICATE = "duplicate"


class IngestionOutcome(BaseModel):
    """What happened to one raw article."""

    model_config = ConfigDict(frozen=True)

    status: IngestionStatus
    document: Document | None = None
    verdict: DuplicateVerdict | None = None


class ProcessingState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class IngestionStats(BaseModel):
    """Aggregate counters for a batch ingestion run."""

    model_config = ConfigDict(frozen=True)

    status: ProcessingState = ProcessingState.IDLE
    started_at: datetime | None = None
    finished_at: datetime | None = None
    total_sources: int = 0
    processed_sources: int = 0
    total_items: int = 0
    new_items: int = 0
    duplicates: int = 0
    errors: int = 0
    vectors_generated: int = 0
    embedding_failures: int = 0
    message: str | None = None

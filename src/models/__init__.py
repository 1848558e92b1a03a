"""feedlens domain models: re-exports all public model classes.

Every record that crosses a component boundary lives in
``src/models/article.py``; this package re-exports them so callers may
write ``from src.models import Document``.

Groups:
    - Embedding / index: EmbeddingResult, IndexEntry, VectorMatch
    - Articles: RawArticle, Document, DuplicateCandidate, DuplicateVerdict
    - Search: SearchFilter, SearchResult, CorpusStatistics, LabelCount
    - Ingestion: IngestionStatus, IngestionOutcome, ProcessingState, IngestionStats
"""

from __future__ import annotations

from src.models.article import (
    CorpusStatistics,
    Document,
    DuplicateCandidate,
    DuplicateVerdict,
    EmbeddingResult,
    IndexEntry,
    IngestionOutcome,
    IngestionStats,
    IngestionStatus,
    LabelCount,
    MetadataValue,
    ProcessingState,
    RawArticle,
    SearchFilter,
    SearchResult,
    VectorMatch,
    ensure_utc,
    utc_now,
)

__all__ = [
    "CorpusStatistics",
    "Document",
    "DuplicateCandidate",
    "DuplicateVerdict",
    "EmbeddingResult",
    "IndexEntry",
    "IngestionOutcome",
    "IngestionStats",
    "IngestionStatus",
    "LabelCount",
    "MetadataValue",
    "ProcessingState",
    "RawArticle",
    "SearchFilter",
    "SearchResult",
    "VectorMatch",
    "ensure_utc",
    "utc_now",
]

"""Deduplication gate run against every incoming article.

Two tiers, cheapest first:

1. exact key: an existing document with the same ``guid`` or ``link``
   is a duplicate with score 1.0; no embedding is computed.
2. semantic: embed ``"{title} {body}"``, take the single nearest
   neighbour from the index, and call it a duplicate when its similarity
   reaches the threshold and it resolves to a stored document.

Candidates with neither title nor body skip tier 2.
"""

from __future__ import annotations

import structlog

from src.interfaces.document_store import IDocumentStore
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.article import DuplicateCandidate, DuplicateVerdict
from src.services.embedding_service import EmbeddingService
from src.utils.text_normalizer import build_article_text

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_DUPLICATE_THRESHOLD = 0.98

# Only the nearest neighbour is compared.
_SEMANTIC_NEIGHBOURS = 1


class DeduplicationGate:
    """Decide whether an incoming article is already stored."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
        document_store: IDocumentStore,
        threshold: float = DEFAULT_DUPLICATE_THRESHOLD,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be in [0, 1], got {threshold}")
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._document_store = document_store
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    async def check_duplicate(
        self,
        candidate: DuplicateCandidate,
        threshold: float | None = None,
    ) -> DuplicateVerdict:
        """Return a :class:`DuplicateVerdict` for *candidate*.

        Raises
        ------
        DocumentStoreError
            If the exact-key lookup fails.
        IndexUnavailableError
            If the semantic lookup cannot reach the index.
        """
        threshold = self._threshold if threshold is None else threshold

        existing = await self._document_store.exact_match(candidate.guid, candidate.link)
        if existing is not None:
            logger.info(
                "duplicate_exact_match",
                document_id=existing.document_id,
                guid=candidate.guid,
            )
            return DuplicateVerdict(
                is_duplicate=True,
                matched_document_id=existing.document_id,
                similarity_score=1.0,
            )

        text = build_article_text(candidate.title, candidate.body_text)
        if not text:
            return DuplicateVerdict(is_duplicate=False)

        embedding = await self._embedding_service.embed(text)
        matches = await self._vector_store.query(embedding.vector, _SEMANTIC_NEIGHBOURS)
        if not matches:
            return DuplicateVerdict(is_duplicate=False)

        nearest = matches[0]
        similarity = nearest.similarity
        if similarity < threshold:
            return DuplicateVerdict(is_duplicate=False, similarity_score=similarity)

        document = await self._document_store.find_by_vector_id(nearest.id)
        if document is None:
            logger.warning("duplicate_match_unresolved", vector_id=nearest.id)
            return DuplicateVerdict(is_duplicate=False, similarity_score=similarity)

        logger.info(
            "duplicate_semantic_match",
            document_id=document.document_id,
            similarity=round(similarity, 4),
        )
        return DuplicateVerdict(
            is_duplicate=True,
            matched_document_id=document.document_id,
            similarity_score=similarity,
        )

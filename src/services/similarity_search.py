"""Similarity search engine: the single join between index and documents.

Every semantic lookup in feedlens (free-text search, "more like this",
the HTTP API and the CLI) goes through :class:`SimilaritySearchEngine`.
Callers only choose a :class:`~src.models.article.SearchFilter`.

Pipeline, in fixed order:

    validate -> vector -> index query (over-fetch) -> join to documents
    -> score + min_similarity -> date/source/category filters
    -> stable sort (score desc, published_at desc) -> truncate
    -> (optional) attach indexed vectors

Scores are kept at full precision here; rounding happens at the API edge.
"""

from __future__ import annotations

import structlog

from src.interfaces.document_store import IDocumentStore
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.article import Document, SearchFilter, SearchResult, VectorMatch
from src.services.embedding_service import EmbeddingService
from src.utils.errors import (
    DocumentHasNoVectorError,
    DocumentNotFoundError,
    InvalidQueryError,
    VectorNotFoundError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_FETCH_CEILING = 50


class SimilaritySearchEngine:
    """Rank stored documents by cosine similarity to a query or a document."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
        document_store: IDocumentStore,
        fetch_ceiling: int = _DEFAULT_FETCH_CEILING,
    ) -> None:
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._document_store = document_store
        self._fetch_ceiling = fetch_ceiling

    async def search_by_text(
        self,
        query: str,
        search_filter: SearchFilter | None = None,
    ) -> list[SearchResult]:
        """Return documents most similar to *query*.

        Raises
        ------
        InvalidQueryError
            If *query* is blank or the date bounds are inverted.
        IndexUnavailableError
            If the vector index cannot be reached.
        """
        search_filter = search_filter or SearchFilter()
        if not query or not query.strip():
            raise InvalidQueryError(message="Search query must not be empty")
        self._validate_filter(search_filter)

        embedding = await self._embedding_service.embed(query)
        matches = await self._vector_store.query(
            embedding.vector, self._fetch_size(search_filter)
        )
        results = await self._rank(matches, search_filter)

        logger.info(
            "search_by_text",
            query_length=len(query),
            backend=embedding.backend,
            candidates=len(matches),
            results=len(results),
        )
        return results

    async def search_similar_to(
        self,
        document_id: str,
        search_filter: SearchFilter | None = None,
    ) -> list[SearchResult]:
        """Return documents similar to a stored document, excluding itself.

        Raises
        ------
        InvalidQueryError
            If *document_id* is blank or the date bounds are inverted.
        DocumentNotFoundError
            If no document has *document_id*.
        DocumentHasNoVectorError
            If the document was stored without an embedding.
        """
        search_filter = search_filter or SearchFilter()
        if not document_id or not document_id.strip():
            raise InvalidQueryError(message="Document id must not be empty")
        self._validate_filter(search_filter)

        source = await self._document_store.find_by_id(document_id)
        if source is None:
            raise DocumentNotFoundError(message=f"Document '{document_id}' not found")
        if not source.vector_id:
            raise DocumentHasNoVectorError(
                message=f"Document '{document_id}' has no vector embedding"
            )

        try:
            entry = await self._vector_store.get_by_id(source.vector_id)
        except VectorNotFoundError as exc:
            raise DocumentHasNoVectorError(
                message=(
                    f"Document '{document_id}' references vector "
                    f"'{source.vector_id}' which is missing from the index"
                ),
            ) from exc

        # One extra neighbour absorbs the source document's own vector.
        matches = await self._vector_store.query(
            entry.vector, self._fetch_size(search_filter) + 1
        )
        matches = [m for m in matches if m.id != source.vector_id]
        results = await self._rank(matches, search_filter, exclude_document_id=document_id)

        logger.info(
            "search_similar_to",
            document_id=document_id,
            candidates=len(matches),
            results=len(results),
        )
        return results

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_filter(search_filter: SearchFilter) -> None:
        if (
            search_filter.date_from is not None
            and search_filter.date_to is not None
            and search_filter.date_from > search_filter.date_to
        ):
            raise InvalidQueryError(
                message=(
                    f"date_from ({search_filter.date_from.isoformat()}) is after "
                    f"date_to ({search_filter.date_to.isoformat()})"
                )
            )

    def _fetch_size(self, search_filter: SearchFilter) -> int:
        return min(search_filter.max_results * 2, self._fetch_ceiling)

    async def _rank(
        self,
        matches: list[VectorMatch],
        search_filter: SearchFilter,
        exclude_document_id: str | None = None,
    ) -> list[SearchResult]:
        if not matches:
            return []

        documents = await self._document_store.find_by_vector_ids(m.id for m in matches)
        by_vector_id = {doc.vector_id: doc for doc in documents if doc.vector_id}

        candidates: list[SearchResult] = []
        unjoined = 0
        for match in matches:
            document = by_vector_id.get(match.id)
            if document is None:
                unjoined += 1
                continue
            if exclude_document_id is not None and document.document_id == exclude_document_id:
                continue
            score = match.similarity
            if score < search_filter.min_similarity:
                continue
            if not self._passes_filters(document, search_filter):
                continue
            candidates.append(
                SearchResult(document_id=document.document_id, score=score, document=document)
            )

        if unjoined:
            logger.debug("search_unjoined_vectors", count=unjoined)

        # Two stable passes: secondary key first, then primary.
        candidates.sort(key=lambda r: r.document.published_at, reverse=True)
        candidates.sort(key=lambda r: r.score, reverse=True)
        ranked = candidates[: search_filter.max_results]
        if search_filter.include_vectors:
            ranked = await self._attach_vectors(ranked)
        return ranked

    async def _attach_vectors(self, results: list[SearchResult]) -> list[SearchResult]:
        attached: list[SearchResult] = []
        for result in results:
            try:
                entry = await self._vector_store.get_by_id(result.document.vector_id)
            except VectorNotFoundError:
                # Deleted between query and lookup; return the hit without it.
                attached.append(result)
                continue
            attached.append(result.model_copy(update={"vector": entry.vector}))
        return attached

    @staticmethod
    def _passes_filters(document: Document, search_filter: SearchFilter) -> bool:
        if search_filter.date_from is not None and document.published_at < search_filter.date_from:
            return False
        if search_filter.date_to is not None and document.published_at > search_filter.date_to:
            return False
        if search_filter.source_id is not None and document.source_id != search_filter.source_id:
            return False
        if search_filter.category is not None and search_filter.category not in document.categories:
            return False
        return True

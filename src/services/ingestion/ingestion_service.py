"""Orchestrator for article ingestion: dedup -> embed -> index -> store.

The :class:`IngestionService` coordinates four injected collaborators
(embedding service, vector index, document store, dedup gate) without any
of them knowing about each other.  Each raw article follows the same flow:

    1. DeduplicationGate -- exact key, then nearest-neighbour check
    2. EmbeddingService -- ``"{title} {body}"`` to a vector (never fails)
    3. IVectorStoreProvider -- upsert under a fresh ``article-<hex>`` id
    4. IDocumentStore -- insert the Document carrying that ``vector_id``

If step 3 fails the Document is still stored with ``vector_id=None``; the
article is kept and simply invisible to similarity search.

Batch runs never abort on one bad item: per-item failures are counted in
:class:`~src.models.article.IngestionStats` and processing continues.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

import structlog

from src.interfaces.document_store import IDocumentStore
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.article import (
    Document,
    DuplicateCandidate,
    DuplicateVerdict,
    IngestionOutcome,
    IngestionStats,
    IngestionStatus,
    ProcessingState,
    RawArticle,
    utc_now,
)
from src.services.deduplication import DeduplicationGate
from src.services.embedding_service import EmbeddingService
from src.utils.concurrency import throttled_gather
from src.utils.errors import DocumentStoreError, IndexUnavailableError
from src.utils.text_normalizer import article_body, build_article_text

logger = structlog.get_logger(logger_name=__name__)

_VECTOR_ID_PREFIX = "article-"


@dataclass
class _RunCounters:
    """Mutable tallies for the run in progress; snapshotted into IngestionStats."""

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

    def record(self, outcome: IngestionOutcome) -> None:
        if outcome.status is IngestionStatus.DUPLICATE:
            self.duplicates += 1
            return
        self.new_items += 1
        if outcome.status is IngestionStatus.STORED:
            self.vectors_generated += 1
        else:
            self.embedding_failures += 1

    def snapshot(self) -> IngestionStats:
        return IngestionStats(
            status=self.status,
            started_at=self.started_at,
            finished_at=self.finished_at,
            total_sources=self.total_sources,
            processed_sources=self.processed_sources,
            total_items=self.total_items,
            new_items=self.new_items,
            duplicates=self.duplicates,
            errors=self.errors,
            vectors_generated=self.vectors_generated,
            embedding_failures=self.embedding_failures,
            message=self.message,
        )


class IngestionService:
    """Ingest raw feed articles into the document store and vector index.

    Parameters
    ----------
    embedding_service:
        Shared fallback-chain embedder.
    vector_store:
        Index receiving one vector per stored article.
    document_store:
        Persistence for :class:`Document` records.
    dedup_gate:
        Duplicate check run before any write.
    concurrency:
        Number of sources ingested in parallel by :meth:`ingest_sources`.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
        document_store: IDocumentStore,
        dedup_gate: DeduplicationGate,
        concurrency: int = 4,
    ) -> None:
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._document_store = document_store
        self._dedup_gate = dedup_gate
        self._concurrency = concurrency
        self._counters = _RunCounters()
        # One batch run at a time; counters belong to the active run.
        self._run_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Single article
    # ------------------------------------------------------------------

    async def ingest_article(self, raw: RawArticle) -> IngestionOutcome:
        """Run one article through dedup, embedding, indexing and storage.

        Raises
        ------
        DocumentStoreError
            If the document store cannot be read or written.
        """
        body = article_body(raw.description, raw.content)
        verdict = await self._check_duplicate(raw, body)
        if verdict is not None and verdict.is_duplicate:
            return IngestionOutcome(status=IngestionStatus.DUPLICATE, verdict=verdict)

        published_at = raw.pub_date or utc_now()
        vector_id = await self._index_article(raw, body, published_at)

        document = Document(
            document_id=str(uuid4()),
            source_id=raw.source_id,
            title=raw.title,
            body_text=body,
            published_at=published_at,
            categories=frozenset(c.strip() for c in raw.categories if c and c.strip()),
            vector_id=vector_id,
            link=raw.link,
            guid=raw.guid,
            description=raw.description,
            content=raw.content,
            author=raw.author,
        )

        try:
            await self._document_store.insert(document)
        except DocumentStoreError:
            if vector_id is not None:
                await self._discard_vector(vector_id)
            # A concurrent source may have stored the same guid or link first.
            winner = await self._document_store.exact_match(raw.guid, raw.link)
            if winner is None:
                raise
            logger.info(
                "duplicate_insert_conflict",
                guid=raw.guid,
                source_id=raw.source_id,
                matched_document_id=winner.document_id,
            )
            verdict = DuplicateVerdict(
                is_duplicate=True,
                matched_document_id=winner.document_id,
                similarity_score=1.0,
            )
            return IngestionOutcome(status=IngestionStatus.DUPLICATE, verdict=verdict)
        except Exception:
            if vector_id is not None:
                await self._discard_vector(vector_id)
            raise

        status = IngestionStatus.STORED if vector_id else IngestionStatus.STORED_WITHOUT_VECTOR
        logger.info(
            "article_ingested",
            document_id=document.document_id,
            source_id=document.source_id,
            status=status.value,
        )
        return IngestionOutcome(status=status, document=document, verdict=verdict)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def ingest_batch(self, raws: list[RawArticle]) -> IngestionStats:
        """Ingest *raws* in order; one failing item never stops the batch."""
        async with self._run_lock:
            self._start_run(total_sources=1, total_items=len(raws))
            await self._ingest_items(raws)
            self._counters.processed_sources = 1
            return self._finish_run()

    async def ingest_sources(self, batches: dict[str, list[RawArticle]]) -> IngestionStats:
        """Ingest several sources concurrently and aggregate their counts.

        Items within one source are processed sequentially, so a duplicate
        appearing twice in the same feed is caught by the exact-key check.
        Across sources two copies can pass that check together; the losing
        insert is then reported as a duplicate of the stored one.
        """
        async with self._run_lock:
            self._start_run(
                total_sources=len(batches),
                total_items=sum(len(items) for items in batches.values()),
            )
            semaphore = asyncio.Semaphore(self._concurrency)
            results = await throttled_gather(
                [self._ingest_source(source_id, items) for source_id, items in batches.items()],
                semaphore=semaphore,
            )
            for source_id, result in zip(batches, results):
                if isinstance(result, BaseException):
                    logger.error(
                        "source_ingest_failed",
                        source_id=source_id,
                        error=str(result),
                    )
            return self._finish_run()

    def get_status(self) -> IngestionStats:
        """Return the statistics of the current or most recent run."""
        return self._counters.snapshot()

    def reset_status(self) -> IngestionStats:
        """Clear finished-run statistics.  A run in progress is left alone."""
        if self._counters.status is not ProcessingState.PROCESSING:
            self._counters = _RunCounters()
        return self._counters.snapshot()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _ingest_source(self, source_id: str, raws: list[RawArticle]) -> None:
        await self._ingest_items(raws)
        self._counters.processed_sources += 1
        logger.info("source_ingested", source_id=source_id, items=len(raws))

    async def _ingest_items(self, raws: list[RawArticle]) -> None:
        for raw in raws:
            try:
                outcome = await self.ingest_article(raw)
            except Exception as exc:
                self._counters.errors += 1
                logger.error(
                    "article_ingest_failed",
                    source_id=raw.source_id,
                    guid=raw.guid,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                continue
            self._counters.record(outcome)

    async def _check_duplicate(self, raw: RawArticle, body: str) -> DuplicateVerdict | None:
        candidate = DuplicateCandidate(
            title=raw.title,
            body_text=body,
            guid=raw.guid,
            link=raw.link,
        )
        try:
            return await self._dedup_gate.check_duplicate(candidate)
        except IndexUnavailableError as exc:
            # The exact-key tier already ran; only the semantic tier was lost.
            logger.warning("dedup_semantic_check_skipped", guid=raw.guid, error=str(exc))
            return None

    async def _index_article(
        self,
        raw: RawArticle,
        body: str,
        published_at: datetime,
    ) -> str | None:
        text = build_article_text(raw.title, body)
        if not text:
            logger.warning("article_has_no_text", guid=raw.guid, source_id=raw.source_id)
            return None

        embedding = await self._embedding_service.embed(text)
        vector_id = f"{_VECTOR_ID_PREFIX}{uuid4().hex}"
        metadata = {
            "title": raw.title,
            "source_id": raw.source_id,
            "published_at": published_at.isoformat(),
            "link": raw.link,
        }
        try:
            await self._vector_store.upsert(vector_id, embedding.vector, metadata)
        except (IndexUnavailableError, ValueError) as exc:
            logger.warning(
                "article_vector_not_stored",
                guid=raw.guid,
                backend=embedding.backend,
                error=str(exc),
            )
            return None
        return vector_id

    async def _discard_vector(self, vector_id: str) -> None:
        try:
            await self._vector_store.delete(vector_id)
        except IndexUnavailableError as exc:
            logger.warning("orphan_vector_not_deleted", vector_id=vector_id, error=str(exc))

    def _start_run(self, total_sources: int, total_items: int) -> None:
        self._counters = _RunCounters(
            status=ProcessingState.PROCESSING,
            started_at=utc_now(),
            total_sources=total_sources,
            total_items=total_items,
            message="Ingestion in progress",
        )
        logger.info("ingestion_started", sources=total_sources, items=total_items)

    def _finish_run(self) -> IngestionStats:
        counters = self._counters
        counters.finished_at = utc_now()
        if counters.total_items and counters.errors == counters.total_items:
            counters.status = ProcessingState.ERROR
        else:
            counters.status = ProcessingState.COMPLETED
        counters.message = (
            f"Processed {counters.total_items} items: {counters.new_items} new, "
            f"{counters.duplicates} duplicates, {counters.errors} errors"
        )
        logger.info(
            "ingestion_finished",
            status=counters.status.value,
            new_items=counters.new_items,
            duplicates=counters.duplicates,
            errors=counters.errors,
            vectors_generated=counters.vectors_generated,
        )
        return counters.snapshot()

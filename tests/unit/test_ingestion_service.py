"""Unit tests for IngestionService with a real dedup gate and SQLite store."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from src.models.article import IngestionStatus, ProcessingState
from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from src.services.deduplication import DeduplicationGate
from src.services.embedding_service import EmbeddingService
from src.services.ingestion import IngestionService
from src.utils.errors import DocumentStoreError
from tests.conftest import MockVectorStore, make_raw


@pytest.fixture
def index() -> MockVectorStore:
    return MockVectorStore()


@pytest.fixture
def service(index: MockVectorStore, document_store: SQLiteDocumentStore) -> IngestionService:
    embedding_service = EmbeddingService()
    gate = DeduplicationGate(embedding_service, index, document_store)
    return IngestionService(
        embedding_service=embedding_service,
        vector_store=index,
        document_store=document_store,
        dedup_gate=gate,
    )


class TestIngestArticle:
    @pytest.mark.asyncio
    async def test_stores_document_and_vector(self, service, index, document_store) -> None:
        outcome = await service.ingest_article(
            make_raw(
                guid="urn:1",
                categories=[" economy ", "", "europe"],
                pub_date=datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc),
            )
        )

        assert outcome.status is IngestionStatus.STORED
        document = outcome.document
        assert document is not None
        assert document.vector_id is not None and document.vector_id.startswith("article-")
        assert document.categories == frozenset({"economy", "europe"})
        assert document.published_at == datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)

        entry = await index.get_by_id(document.vector_id)
        assert entry.metadata["source_id"] == "reuters"
        assert entry.metadata["published_at"] == "2024-06-01T09:30:00+00:00"
        assert await document_store.find_by_id(document.document_id) == document

    @pytest.mark.asyncio
    async def test_missing_pub_date_defaults_to_now(self, service) -> None:
        before = datetime.now(timezone.utc)
        outcome = await service.ingest_article(make_raw())
        assert outcome.document is not None
        assert outcome.document.published_at >= before

    @pytest.mark.asyncio
    async def test_body_falls_back_to_stripped_content(self, service) -> None:
        outcome = await service.ingest_article(
            make_raw(description="", content="<p>Markets <b>rallied</b> &amp; closed up.</p>")
        )
        assert outcome.document is not None
        assert outcome.document.body_text == "Markets rallied & closed up."

    @pytest.mark.asyncio
    async def test_index_outage_stores_without_vector(self, service, index, document_store) -> None:
        index.unavailable = True

        outcome = await service.ingest_article(make_raw(guid="urn:1"))

        assert outcome.status is IngestionStatus.STORED_WITHOUT_VECTOR
        assert outcome.document is not None and outcome.document.vector_id is None
        assert await document_store.count() == 1

    @pytest.mark.asyncio
    async def test_article_without_text_has_no_vector(self, service, index) -> None:
        outcome = await service.ingest_article(
            make_raw(title="", description="", link="https://x.example/empty")
        )
        assert outcome.status is IngestionStatus.STORED_WITHOUT_VECTOR
        assert await index.count() == 0

    @pytest.mark.asyncio
    async def test_exact_duplicate(self, service) -> None:
        first = await service.ingest_article(make_raw(guid="urn:1"))
        second = await service.ingest_article(make_raw(guid="urn:1", title="Retitled"))

        assert second.status is IngestionStatus.DUPLICATE
        assert second.verdict is not None
        assert first.document is not None
        assert second.verdict.matched_document_id == first.document.document_id
        assert second.verdict.similarity_score == 1.0

    @pytest.mark.asyncio
    async def test_semantic_duplicate(self, service) -> None:
        # Same text under a new guid and link: hash vectors are identical.
        await service.ingest_article(make_raw(guid="urn:1", link="https://a.example/1"))
        outcome = await service.ingest_article(make_raw(guid="urn:2", link="https://b.example/2"))

        assert outcome.status is IngestionStatus.DUPLICATE
        assert outcome.verdict is not None
        assert outcome.verdict.similarity_score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_failed_insert_discards_vector(self, service, index, document_store, monkeypatch) -> None:
        async def _broken_insert(document):
            raise DocumentStoreError(message="disk full")

        monkeypatch.setattr(document_store, "insert", _broken_insert)

        with pytest.raises(DocumentStoreError):
            await service.ingest_article(make_raw())
        assert await index.count() == 0


class TestBatches:
    @pytest.mark.asyncio
    async def test_batch_counts(self, service) -> None:
        raws = [
            make_raw(title="Rates rise", guid="urn:1"),
            make_raw(title="Rates rise", guid="urn:1"),
            make_raw(title="Storm hits coast", guid="urn:2"),
        ]

        stats = await service.ingest_batch(raws)

        assert stats.status is ProcessingState.COMPLETED
        assert stats.total_items == 3
        assert stats.new_items == 2
        assert stats.duplicates == 1
        assert stats.errors == 0
        assert stats.vectors_generated == 2
        assert stats.finished_at is not None

    @pytest.mark.asyncio
    async def test_batch_continues_past_failures(self, service, document_store, monkeypatch) -> None:
        real_insert = document_store.insert

        async def _flaky_insert(document):
            if document.title == "bad":
                raise DocumentStoreError(message="constraint failed")
            return await real_insert(document)

        monkeypatch.setattr(document_store, "insert", _flaky_insert)

        stats = await service.ingest_batch(
            [make_raw(title="good one"), make_raw(title="bad"), make_raw(title="good two")]
        )

        assert stats.errors == 1
        assert stats.new_items == 2
        assert stats.status is ProcessingState.COMPLETED
        assert await document_store.count() == 2

    @pytest.mark.asyncio
    async def test_all_items_failing_marks_error(self, service, document_store, monkeypatch) -> None:
        async def _broken_insert(document):
            raise DocumentStoreError(message="read-only")

        monkeypatch.setattr(document_store, "insert", _broken_insert)

        stats = await service.ingest_batch([make_raw(title="a"), make_raw(title="b")])

        assert stats.status is ProcessingState.ERROR
        assert stats.errors == 2

    @pytest.mark.asyncio
    async def test_ingest_sources_aggregates(self, service, document_store) -> None:
        stats = await service.ingest_sources(
            {
                "reuters": [make_raw(title="Rates rise"), make_raw(title="Oil slips")],
                "bbc": [make_raw(title="Storm hits coast", source_id="bbc")],
            }
        )

        assert stats.total_sources == 2
        assert stats.processed_sources == 2
        assert stats.total_items == 3
        assert stats.new_items == 3
        assert await document_store.count() == 3

    @pytest.mark.asyncio
    async def test_status_and_reset(self, service) -> None:
        assert service.get_status().status is ProcessingState.IDLE

        await service.ingest_batch([make_raw()])
        assert service.get_status().new_items == 1

        cleared = service.reset_status()
        assert cleared.status is ProcessingState.IDLE
        assert cleared.new_items == 0

    @pytest.mark.asyncio
    async def test_same_guid_from_two_sources_counts_duplicate(
        self, index, document_store, monkeypatch
    ) -> None:
        embedding_service = EmbeddingService()
        gate = DeduplicationGate(embedding_service, index, document_store)
        service = IngestionService(embedding_service, index, document_store, gate)

        # Hold both sources after their duplicate check so the inserts race.
        real_check = gate.check_duplicate
        both_checked = asyncio.Event()
        checked = []

        async def _check_then_wait(*args, **kwargs):
            verdict = await real_check(*args, **kwargs)
            checked.append(verdict)
            if len(checked) == 2:
                both_checked.set()
            await both_checked.wait()
            return verdict

        monkeypatch.setattr(gate, "check_duplicate", _check_then_wait)

        reuters = make_raw(title="Rates rise", guid="urn:x", link="https://r.example/1")
        ap = make_raw(title="Rates go up", guid="urn:x", source_id="ap", link="https://ap.example/1")

        stats = await service.ingest_sources({"reuters": [reuters], "ap": [ap]})

        assert [v.is_duplicate for v in checked] == [False, False]
        assert stats.new_items == 1
        assert stats.duplicates == 1
        assert stats.errors == 0
        assert await document_store.count() == 1
        assert await index.count() == 1

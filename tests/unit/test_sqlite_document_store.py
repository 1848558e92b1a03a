"""Unit tests for the SQLite document store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from src.utils.errors import DocumentStoreError
from tests.conftest import make_document


class TestInitialize:
    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path) -> None:
        store = SQLiteDocumentStore(db_path=tmp_path / "nested" / "dir" / "articles.db")
        await store.initialize()
        assert (tmp_path / "nested" / "dir" / "articles.db").exists()

    @pytest.mark.asyncio
    async def test_is_idempotent(self, document_store: SQLiteDocumentStore) -> None:
        await document_store.insert(make_document())
        await document_store.initialize()
        assert await document_store.count() == 1

    def test_provider_name(self, tmp_path) -> None:
        assert SQLiteDocumentStore(tmp_path / "x.db").get_provider_name() == "sqlite_documents"


class TestInsertAndFind:
    @pytest.mark.asyncio
    async def test_round_trip_preserves_fields(self, document_store: SQLiteDocumentStore) -> None:
        original = make_document(
            categories=frozenset({"economy", "europe"}),
            link="https://news.example.com/ecb",
            guid="urn:reuters:1",
            author="Jane Doe",
        )
        await document_store.insert(original)

        loaded = await document_store.find_by_id("doc-1")

        assert loaded == original

    @pytest.mark.asyncio
    async def test_naive_timestamps_come_back_utc(
        self, document_store: SQLiteDocumentStore
    ) -> None:
        await document_store.insert(make_document(published_at=datetime(2024, 1, 2, 3, 4)))
        loaded = await document_store.find_by_id("doc-1")
        assert loaded is not None
        assert loaded.published_at.tzinfo is not None
        assert loaded.published_at.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_find_missing_returns_none(self, document_store: SQLiteDocumentStore) -> None:
        assert await document_store.find_by_id("nope") is None
        assert await document_store.find_by_vector_id("nope") is None

    @pytest.mark.asyncio
    async def test_document_without_vector(self, document_store: SQLiteDocumentStore) -> None:
        await document_store.insert(make_document(vector_id=None))
        loaded = await document_store.find_by_id("doc-1")
        assert loaded is not None
        assert loaded.has_vector is False

    @pytest.mark.asyncio
    async def test_duplicate_document_id_rejected(
        self, document_store: SQLiteDocumentStore
    ) -> None:
        await document_store.insert(make_document(vector_id="article-1"))
        with pytest.raises(DocumentStoreError):
            await document_store.insert(make_document(vector_id="article-2"))

    @pytest.mark.asyncio
    async def test_duplicate_guid_rejected(self, document_store: SQLiteDocumentStore) -> None:
        await document_store.insert(make_document(document_id="a", guid="urn:1"))
        with pytest.raises(DocumentStoreError):
            await document_store.insert(make_document(document_id="b", guid="urn:1"))

    @pytest.mark.asyncio
    async def test_empty_guids_coexist(self, document_store: SQLiteDocumentStore) -> None:
        await document_store.insert(make_document(document_id="a", vector_id="v-a", guid=""))
        await document_store.insert(make_document(document_id="b", vector_id="v-b", guid=""))
        assert await document_store.count() == 2


class TestVectorJoin:
    @pytest.mark.asyncio
    async def test_find_by_vector_id(self, document_store: SQLiteDocumentStore) -> None:
        await document_store.insert(make_document(vector_id="article-abc"))
        loaded = await document_store.find_by_vector_id("article-abc")
        assert loaded is not None
        assert loaded.document_id == "doc-1"

    @pytest.mark.asyncio
    async def test_find_by_vector_ids_skips_unknown(
        self, document_store: SQLiteDocumentStore
    ) -> None:
        await document_store.insert(make_document(document_id="a", vector_id="v-a"))
        await document_store.insert(make_document(document_id="b", vector_id="v-b"))
        await document_store.insert(make_document(document_id="c", vector_id=None))

        found = await document_store.find_by_vector_ids(["v-a", "v-b", "v-missing", "v-a"])

        assert sorted(doc.document_id for doc in found) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_find_by_vector_ids_empty(self, document_store: SQLiteDocumentStore) -> None:
        assert await document_store.find_by_vector_ids([]) == []

    @pytest.mark.asyncio
    async def test_find_by_vector_ids_chunks_large_input(
        self, document_store: SQLiteDocumentStore
    ) -> None:
        for i in range(3):
            await document_store.insert(make_document(document_id=f"d{i}", vector_id=f"v{i}"))

        ids = [f"unknown-{i}" for i in range(1200)] + ["v0", "v1", "v2"]
        found = await document_store.find_by_vector_ids(ids)

        assert len(found) == 3


class TestExactMatch:
    @pytest.mark.asyncio
    async def test_match_by_guid(self, document_store: SQLiteDocumentStore) -> None:
        await document_store.insert(make_document(guid="urn:1", link="https://a.example/1"))
        found = await document_store.exact_match("urn:1", "https://other.example/")
        assert found is not None and found.document_id == "doc-1"

    @pytest.mark.asyncio
    async def test_match_by_link(self, document_store: SQLiteDocumentStore) -> None:
        await document_store.insert(make_document(guid="urn:1", link="https://a.example/1"))
        found = await document_store.exact_match("urn:other", "https://a.example/1")
        assert found is not None and found.document_id == "doc-1"

    @pytest.mark.asyncio
    async def test_guid_takes_priority_over_link(
        self, document_store: SQLiteDocumentStore
    ) -> None:
        await document_store.insert(
            make_document(document_id="by-link", vector_id="v1", guid="", link="https://x/1")
        )
        await document_store.insert(
            make_document(document_id="by-guid", vector_id="v2", guid="urn:9", link="https://x/2")
        )

        found = await document_store.exact_match("urn:9", "https://x/1")

        assert found is not None and found.document_id == "by-guid"

    @pytest.mark.asyncio
    async def test_empty_keys_never_match(self, document_store: SQLiteDocumentStore) -> None:
        await document_store.insert(make_document(guid="", link=""))
        assert await document_store.exact_match("", "") is None
        assert await document_store.exact_match(None, None) is None


class TestCount:
    @pytest.mark.asyncio
    async def test_count(self, document_store: SQLiteDocumentStore) -> None:
        assert await document_store.count() == 0
        now = datetime.now(timezone.utc)
        for i in range(4):
            await document_store.insert(
                make_document(document_id=f"d{i}", vector_id=f"v{i}", published_at=now)
            )
        assert await document_store.count() == 4


class TestStatistics:
    @pytest.mark.asyncio
    async def test_empty_store(self, document_store: SQLiteDocumentStore) -> None:
        stats = await document_store.statistics()
        assert stats.total_documents == 0
        assert stats.sources == []
        assert stats.categories == []

    @pytest.mark.asyncio
    async def test_counts_by_source_and_category(self, document_store: SQLiteDocumentStore) -> None:
        rows = [
            ("d1", "bbc", {"sport", "europe"}),
            ("d2", "reuters", {"economy", "europe"}),
            ("d3", "bbc", {"weather"}),
            ("d4", "ap", set()),
        ]
        for document_id, source_id, categories in rows:
            await document_store.insert(
                make_document(
                    document_id=document_id,
                    vector_id=f"v-{document_id}",
                    source_id=source_id,
                    categories=frozenset(categories),
                )
            )

        stats = await document_store.statistics()

        assert stats.total_documents == 4
        assert [(s.name, s.count) for s in stats.sources] == [
            ("bbc", 2),
            ("ap", 1),
            ("reuters", 1),
        ]
        assert [(c.name, c.count) for c in stats.categories] == [
            ("europe", 2),
            ("economy", 1),
            ("sport", 1),
            ("weather", 1),
        ]

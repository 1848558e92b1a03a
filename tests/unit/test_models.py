"""Unit tests for the article/search domain models."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from src.models.article import (
    Document,
    DuplicateVerdict,
    RawArticle,
    SearchFilter,
    VectorMatch,
    ensure_utc,
)
from tests.conftest import make_document


class TestEnsureUtc:
    def test_naive_gets_utc(self) -> None:
        value = ensure_utc(datetime(2024, 1, 1, 8, 0))
        assert value == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_aware_is_converted(self) -> None:
        cet = timezone(timedelta(hours=1))
        value = ensure_utc(datetime(2024, 1, 1, 9, 0, tzinfo=cet))
        assert value == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert value is not None and value.utcoffset() == timedelta(0)

    def test_none(self) -> None:
        assert ensure_utc(None) is None


class TestVectorMatch:
    @pytest.mark.parametrize(
        ("distance", "similarity"),
        [(0.0, 1.0), (0.25, 0.75), (1.0, 0.0), (1.7, 0.0)],
    )
    def test_similarity_is_clamped(self, distance: float, similarity: float) -> None:
        assert VectorMatch(id="v", distance=distance).similarity == similarity

    def test_negative_distance_clamps_to_one(self) -> None:
        assert VectorMatch(id="v", distance=-1e-7).similarity == 1.0


class TestRawArticle:
    def test_guid_defaults_to_link(self) -> None:
        raw = RawArticle(source_id="bbc", link="https://bbc.example/a")
        assert raw.guid == "https://bbc.example/a"

    def test_explicit_guid_kept(self) -> None:
        raw = RawArticle(source_id="bbc", link="https://bbc.example/a", guid="urn:a")
        assert raw.guid == "urn:a"

    def test_source_id_required(self) -> None:
        with pytest.raises(ValidationError):
            RawArticle.model_validate({"title": "No source"})

    def test_pub_date_parsed_and_normalised(self) -> None:
        raw = RawArticle.model_validate(
            {"source_id": "bbc", "pub_date": "2024-06-01T10:00:00+02:00"}
        )
        assert raw.pub_date == datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)

    def test_frozen(self) -> None:
        raw = RawArticle(source_id="bbc")
        with pytest.raises(ValidationError):
            raw.title = "changed"  # type: ignore[misc]


class TestDocument:
    def test_has_vector(self) -> None:
        assert make_document(vector_id="article-1").has_vector is True
        assert make_document(vector_id=None).has_vector is False

    def test_categories_from_list(self) -> None:
        doc = Document(
            document_id="d",
            source_id="s",
            title="t",
            published_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            categories=["a", "b", "a"],  # type: ignore[arg-type]
        )
        assert doc.categories == frozenset({"a", "b"})


class TestSearchFilter:
    def test_defaults(self) -> None:
        search_filter = SearchFilter()
        assert search_filter.min_similarity == 0.5
        assert search_filter.max_results == 10

    @pytest.mark.parametrize("value", [-0.01, 1.01])
    def test_min_similarity_range(self, value: float) -> None:
        with pytest.raises(ValidationError):
            SearchFilter(min_similarity=value)

    def test_max_results_positive(self) -> None:
        with pytest.raises(ValidationError):
            SearchFilter(max_results=0)

    def test_naive_bounds_become_utc(self) -> None:
        search_filter = SearchFilter(date_from=datetime(2024, 1, 1))
        assert search_filter.date_from is not None
        assert search_filter.date_from.tzinfo is not None


class TestDuplicateVerdict:
    def test_score_range(self) -> None:
        with pytest.raises(ValidationError):
            DuplicateVerdict(is_duplicate=True, similarity_score=1.2)

"""Shared pytest fixtures for the feedlens test suite."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.interfaces.document_store import IDocumentStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.article import Document, EmbeddingResult, IndexEntry, RawArticle, VectorMatch
from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from src.providers.vector_store.chromadb_provider import ChromaDBProvider
from src.services.embedding_service import EmbeddingService
from src.utils.errors import IndexUnavailableError, VectorNotFoundError

DIM = 384


# ---------------------------------------------------------------------------
# Vector helpers
# ---------------------------------------------------------------------------


def basis_vector(dim: int = DIM) -> list[float]:
    """The unit vector along the first axis; the reference "query" direction."""
    return [1.0] + [0.0] * (dim - 1)


def vector_at(similarity: float, axis: int = 1, dim: int = DIM) -> list[float]:
    """Unit vector whose cosine similarity to :func:`basis_vector` is *similarity*."""
    vector = [0.0] * dim
    vector[0] = similarity
    vector[axis] = math.sqrt(max(0.0, 1.0 - similarity * similarity))
    return vector


# ---------------------------------------------------------------------------
# Model builders
# ---------------------------------------------------------------------------


def make_document(
    document_id: str = "doc-1",
    vector_id: str | None = "article-1",
    source_id: str = "reuters",
    title: str = "ECB raises interest rates",
    published_at: datetime | None = None,
    categories: frozenset[str] | None = None,
    **overrides: Any,
) -> Document:
    return Document(
        document_id=document_id,
        source_id=source_id,
        title=title,
        body_text=overrides.pop("body_text", "The central bank moved by a quarter point."),
        published_at=published_at or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc),
        categories=categories if categories is not None else frozenset({"economy"}),
        vector_id=vector_id,
        **overrides,
    )


def make_raw(
    title: str = "ECB raises interest rates",
    description: str = "The central bank moved by a quarter point.",
    source_id: str = "reuters",
    **overrides: Any,
) -> RawArticle:
    data: dict[str, Any] = {
        "title": title,
        "description": description,
        "source_id": source_id,
        "link": overrides.pop("link", f"https://news.example.com/{title.lower().replace(' ', '-')}"),
    }
    data.update(overrides)
    return RawArticle.model_validate(data)


# ---------------------------------------------------------------------------
# Mocked collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_embedding_service() -> MagicMock:
    """EmbeddingService mock that always returns the basis vector."""
    service = MagicMock(spec=EmbeddingService)
    service.embed = AsyncMock(
        return_value=EmbeddingResult(vector=basis_vector(), backend="mock_backend")
    )
    service.get_dimension.return_value = DIM
    service.get_chain.return_value = ["mock_backend"]
    service.last_backend = "mock_backend"
    return service


@pytest.fixture
def mock_vector_store() -> MagicMock:
    store = MagicMock(spec=IVectorStoreProvider)
    store.query = AsyncMock(return_value=[])
    store.upsert = AsyncMock(return_value=None)
    store.delete = AsyncMock(return_value=True)
    store.count = AsyncMock(return_value=0)
    store.get_by_id = AsyncMock()
    store.get_dimension.return_value = DIM
    store.get_provider_name.return_value = "mock_index"
    store.is_available.return_value = True
    return store


@pytest.fixture
def mock_document_store() -> MagicMock:
    store = MagicMock(spec=IDocumentStore)
    store.exact_match = AsyncMock(return_value=None)
    store.find_by_id = AsyncMock(return_value=None)
    store.find_by_vector_id = AsyncMock(return_value=None)
    store.find_by_vector_ids = AsyncMock(return_value=[])
    store.insert = AsyncMock(side_effect=lambda doc: doc)
    store.count = AsyncMock(return_value=0)
    store.get_provider_name.return_value = "mock_documents"
    return store


def mock_embedding_provider(
    name: str = "mock_provider",
    vector: list[float] | None = None,
    available: bool = True,
    error: BaseException | None = None,
) -> MagicMock:
    """Build an ``IEmbeddingProvider`` mock returning *vector* or raising *error*."""
    provider = MagicMock(spec=IEmbeddingProvider)
    provider.get_provider_name.return_value = name
    provider.get_dimension.return_value = len(vector) if vector else DIM
    provider.is_available.return_value = available
    if error is not None:
        provider.embed_single = AsyncMock(side_effect=error)
    else:
        provider.embed_single = AsyncMock(return_value=vector or vector_at(0.5))
    return provider


def matches(*pairs: tuple[str, float]) -> list[VectorMatch]:
    """Build VectorMatch rows from ``(id, similarity)`` pairs."""
    return [VectorMatch(id=vid, distance=1.0 - similarity) for vid, similarity in pairs]


class MockVectorStore(IVectorStoreProvider):
    """In-memory exact cosine index backed by a dict.

    Unlike HNSW it never approximates, so tests can assert exact orderings.
    """

    def __init__(self, dimension: int = DIM) -> None:
        self._dimension = dimension
        self._entries: dict[str, tuple[list[float], dict[str, Any]]] = {}
        self.unavailable = False

    def _guard(self) -> None:
        if self.unavailable:
            raise IndexUnavailableError(message="index down", provider_name="mock_index")

    async def upsert(self, vector_id, vector, metadata=None) -> None:
        self._guard()
        if len(vector) != self._dimension:
            raise ValueError("dimension mismatch")
        self._entries[vector_id] = (list(vector), dict(metadata or {}))

    async def get_by_id(self, vector_id: str) -> IndexEntry:
        self._guard()
        if vector_id not in self._entries:
            raise VectorNotFoundError(message=vector_id, provider_name="mock_index")
        vector, metadata = self._entries[vector_id]
        return IndexEntry(id=vector_id, vector=vector, metadata=metadata)

    async def query(self, vector: list[float], k: int) -> list[VectorMatch]:
        self._guard()
        if k <= 0:
            return []
        norm_q = math.sqrt(sum(x * x for x in vector)) or 1.0
        rows = []
        for vid, (stored, _) in self._entries.items():
            norm_s = math.sqrt(sum(x * x for x in stored)) or 1.0
            cosine = sum(a * b for a, b in zip(vector, stored)) / (norm_q * norm_s)
            rows.append(VectorMatch(id=vid, distance=max(0.0, 1.0 - cosine)))
        rows.sort(key=lambda m: (m.distance, m.id))
        return rows[:k]

    async def delete(self, vector_id: str) -> bool:
        self._guard()
        return self._entries.pop(vector_id, None) is not None

    async def count(self) -> int:
        self._guard()
        return len(self._entries)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "mock_index"

    def is_available(self) -> bool:
        return not self.unavailable


# ---------------------------------------------------------------------------
# Real backends on tmp_path
# ---------------------------------------------------------------------------


@pytest.fixture
def chroma_provider(tmp_path: Path) -> ChromaDBProvider:
    return ChromaDBProvider(
        dimension=DIM,
        persist_directory=str(tmp_path / "chroma"),
        collection_name="test_articles",
    )


@pytest.fixture
async def document_store(tmp_path: Path) -> SQLiteDocumentStore:
    store = SQLiteDocumentStore(db_path=tmp_path / "articles.db")
    await store.initialize()
    return store

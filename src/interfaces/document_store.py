"""Abstract base class for article persistence providers.

# ─── ADAPTER PATTERN ─────────────────────────────────────────────────
#
# The document store is a pure lookup/join layer: it holds Document
# records and resolves vector ids back to them.  It owns no similarity
# logic.  The concrete implementation is SQLiteDocumentStore
# (src/providers/document_store/sqlite_document_store.py).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from src.models.article import CorpusStatistics, Document


class IDocumentStore(ABC):
    """Contract for article persistence used by search, dedup and ingestion.

    Failures raise :class:`~src.utils.errors.DocumentStoreError`.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Idempotent."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def insert(self, document: Document) -> Document:
        """Persist a new document and return it."""

    @abstractmethod
    async def find_by_id(self, document_id: str) -> Document | None:
        """Return the document with *document_id*, or ``None``."""

    @abstractmethod
    async def find_by_vector_id(self, vector_id: str) -> Document | None:
        """Return the document joined to *vector_id*, or ``None``."""

    @abstractmethod
    async def find_by_vector_ids(self, vector_ids: Iterable[str]) -> list[Document]:
        """Return every document whose ``vector_id`` is in *vector_ids*.

        Ids with no matching document are silently absent from the result;
        order is unspecified.
        """

    @abstractmethod
    async def exact_match(self, guid: str | None, link: str | None) -> Document | None:
        """Return a document whose guid OR link equals the given key.

        Empty keys never match.
        """

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored documents."""

    @abstractmethod
    async def statistics(self) -> CorpusStatistics:
        """Return article counts per source and per category.

        Both lists are ordered by count descending, then name ascending.
        """

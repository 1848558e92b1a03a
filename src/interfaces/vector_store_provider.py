"""Abstract base class for vector-index providers.

Defines the contract for storing article embeddings and answering
nearest-neighbour queries.  The index knows nothing about documents: it
maps an opaque id to a vector plus flat metadata.  Distances are cosine
distances, so ``similarity = 1 - distance``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.article import IndexEntry, MetadataValue, VectorMatch


# Concrete implementation: ChromaDBProvider (src/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for the vector index used by search and deduplication.

    All methods are async to support network-backed stores.  Backend
    connectivity failures surface as
    :class:`~src.utils.errors.IndexUnavailableError`.
    """

    @abstractmethod
    async def upsert(
        self,
        vector_id: str,
        vector: list[float],
        metadata: dict[str, MetadataValue] | None = None,
    ) -> None:
        """Insert or replace the entry for *vector_id*.

        Raises
        ------
        ValueError
            If ``len(vector)`` differs from the index dimension.
        src.utils.errors.IndexUnavailableError
            If the backing store cannot be reached.
        """

    @abstractmethod
    async def get_by_id(self, vector_id: str) -> IndexEntry:
        """Return the stored entry.

        Raises
        ------
        src.utils.errors.VectorNotFoundError
            If no entry exists for *vector_id*.
        """

    @abstractmethod
    async def query(self, vector: list[float], k: int) -> list[VectorMatch]:
        """Return up to *k* nearest entries, closest first.

        Equal distances are ordered by id.  An empty index returns ``[]``.
        """

    @abstractmethod
    async def delete(self, vector_id: str) -> bool:
        """Delete an entry.  Returns ``False`` if it did not exist."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored entries."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the vector dimension this index accepts."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the index is reachable."""

"""ChromaDB vector index provider adapter.

Wraps a ChromaDB collection to implement :class:`IVectorStoreProvider`.
The collection is created with cosine space, so ChromaDB's reported
distances are ``1 - cosine_similarity`` and map straight onto
:class:`~src.models.article.VectorMatch`.

Three client modes are supported:

* ``host`` set: ``chromadb.HttpClient`` against a running Chroma server
* ``persist_directory`` set: ``chromadb.PersistentClient`` on local disk
* neither: ``chromadb.EphemeralClient`` (in-memory, used by tests/dev)

The client and collection are opened lazily on first use, so an
unreachable server surfaces as :class:`IndexUnavailableError` from the
first operation instead of failing application start-up.
"""

from __future__ import annotations

import os
from typing import Any

# ChromaDB reads this before its telemetry client is created.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.article import IndexEntry, MetadataValue, VectorMatch
from src.utils.errors import ConfigurationError, IndexUnavailableError, VectorNotFoundError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    feedlens always passes pre-computed vectors, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its
    default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "feedlens uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector index backed by a ChromaDB collection in cosine space."""

    def __init__(
        self,
        dimension: int = 384,
        collection_name: str = "articles",
        persist_directory: str | None = "./data/chromadb",
        host: str | None = None,
        port: int = 8000,
        ssl: bool = False,
        client: Any = None,
    ) -> None:
        self._dimension = dimension
        self._collection_name = collection_name
        self._persist_directory = persist_directory or None
        self._host = host or None
        self._port = port
        self._ssl = ssl
        self._client = client
        self._owns_client = client is None
        self._collection: Any = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _create_client(self) -> Any:
        settings = chromadb.config.Settings(anonymized_telemetry=False)
        if self._host:
            return chromadb.HttpClient(
                host=self._host, port=self._port, ssl=self._ssl, settings=settings
            )
        if self._persist_directory:
            return chromadb.PersistentClient(path=self._persist_directory, settings=settings)
        return chromadb.EphemeralClient(settings=settings)

    def _get_collection(self) -> Any:
        if self._collection is not None:
            return self._collection

        try:
            if self._client is None:
                self._client = self._create_client()
            # Collections persisted with a different embedding function
            # reject the noop one; open those without specifying it.
            try:
                collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine"},
                    embedding_function=_NoopEmbeddingFunction(),
                )
            except ValueError:
                collection = self._client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": "cosine"},
                )
        except Exception as exc:
            if self._owns_client:
                self._client = None
            raise IndexUnavailableError(
                message=f"Cannot open ChromaDB collection '{self._collection_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        self._validate_embedding_dimensions(collection)
        self._collection = collection
        logger.info(
            "chromadb_collection_opened",
            collection=self._collection_name,
            mode=self._mode(),
        )
        return collection

    def _validate_embedding_dimensions(self, collection: Any) -> None:
        """Fail fast when the stored vectors were built at another dimension."""
        try:
            if collection.count() == 0:
                return
            sample = collection.peek(limit=1)
            embeddings = sample.get("embeddings") if sample else None
            if embeddings is None or len(embeddings) == 0:
                return
            stored_dim = len(embeddings[0])
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return

        if stored_dim != self._dimension:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=self._dimension,
            )
            raise ConfigurationError(
                message=(
                    f"Embedding dimension mismatch: collection '{self._collection_name}' "
                    f"holds {stored_dim}-dim vectors but the index is configured "
                    f"for {self._dimension}."
                ),
                provider_name=self.get_provider_name(),
            )

    def _mode(self) -> str:
        if self._host:
            return "http"
        if self._persist_directory:
            return "persistent"
        return "ephemeral"

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(
        self,
        vector_id: str,
        vector: list[float],
        metadata: dict[str, MetadataValue] | None = None,
    ) -> None:
        self._check_dimension(vector)
        collection = self._get_collection()
        clean = self._clean_metadata(metadata)

        kwargs: dict[str, Any] = {"ids": [vector_id], "embeddings": [list(vector)]}
        if clean:
            kwargs["metadatas"] = [clean]

        try:
            collection.upsert(**kwargs)
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("chromadb_upsert", vector_id=vector_id)

    async def get_by_id(self, vector_id: str) -> IndexEntry:
        collection = self._get_collection()
        try:
            result = collection.get(ids=[vector_id], include=["embeddings", "metadatas"])
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB get failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = result.get("ids") or []
        if not ids:
            raise VectorNotFoundError(
                message=f"No index entry for id '{vector_id}'",
                provider_name=self.get_provider_name(),
            )

        embeddings = result.get("embeddings")
        metadatas = result.get("metadatas") or [None]
        return IndexEntry(
            id=ids[0],
            vector=[float(x) for x in embeddings[0]],
            metadata=dict(metadatas[0] or {}),
        )

    async def query(self, vector: list[float], k: int) -> list[VectorMatch]:
        """Return up to *k* nearest entries ordered by (distance, id)."""
        if k <= 0:
            return []
        self._check_dimension(vector)
        collection = self._get_collection()

        try:
            total = collection.count()
            if total == 0:
                return []
            result = collection.query(
                query_embeddings=[list(vector)],
                n_results=min(k, total),
                include=["distances", "metadatas"],
            )
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = (result.get("ids") or [[]])[0]
        distances = (result.get("distances") or [[]])[0]
        metadatas = (result.get("metadatas") or [[None] * len(ids)])[0]

        matches = [
            VectorMatch(
                id=match_id,
                distance=max(0.0, float(distance)),
                metadata=dict(meta or {}),
            )
            for match_id, distance, meta in zip(ids, distances, metadatas)
        ]
        matches.sort(key=lambda m: (m.distance, m.id))
        return matches[:k]

    async def delete(self, vector_id: str) -> bool:
        collection = self._get_collection()
        try:
            existing = collection.get(ids=[vector_id], include=[])
            if not existing.get("ids"):
                return False
            collection.delete(ids=[vector_id])
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chromadb_delete", vector_id=vector_id)
        return True

    async def count(self) -> int:
        collection = self._get_collection()
        try:
            return int(collection.count())
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._get_collection().count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self._dimension:
            raise ValueError(
                f"vector has {len(vector)} dimensions, index expects {self._dimension}"
            )

    @staticmethod
    def _clean_metadata(
        metadata: dict[str, MetadataValue] | None,
    ) -> dict[str, MetadataValue]:
        """Drop ``None`` values; ChromaDB metadata must be str, int, float or bool."""
        if not metadata:
            return {}
        return {key: value for key, value in metadata.items() if value is not None}

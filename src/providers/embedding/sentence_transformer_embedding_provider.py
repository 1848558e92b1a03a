"""Local sentence-transformers embedding provider adapter.

Wraps the ``sentence-transformers`` library to implement
:class:`IEmbeddingProvider` with a HuggingFace feature-extraction model
running on CPU/GPU.  The MiniLM models used here mean-pool token vectors
and return 384-dimensional sentence embeddings.

Default model: ``sentence-transformers/all-MiniLM-L6-v2``; the embedding
service pairs it with ``paraphrase-MiniLM-L3-v2`` as a smaller secondary.
"""

from __future__ import annotations

from typing import Any

from src.providers.embedding.local_model_provider import LocalEmbeddingProvider

_DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
_BATCH_LIMIT = 64  # Conservative batch size for CPU inference


class SentenceTransformerEmbeddingProvider(LocalEmbeddingProvider):
    """Embedding provider backed by a local sentence-transformers model."""

    def __init__(
        self,
        model_name: str | None = None,
        dimension: int = 384,
        cache_dir: str | None = None,
    ) -> None:
        super().__init__(model_name or _DEFAULT_MODEL, dimension, cache_dir)

    def _create_model(self) -> Any:
        from sentence_transformers import SentenceTransformer

        model = SentenceTransformer(self._model_name, cache_folder=self._cache_dir)
        native_dim = model.get_sentence_embedding_dimension()
        if native_dim is not None and native_dim != self._dimension:
            raise ValueError(
                f"model produces {native_dim}-dim vectors, index expects {self._dimension}"
            )
        return model

    def _encode(self, model: Any, texts: list[str]) -> Any:
        return model.encode(
            texts,
            batch_size=_BATCH_LIMIT,
            normalize_embeddings=True,
            show_progress_bar=False,
        )

    def get_provider_name(self) -> str:
        return f"sentence_transformer_{self._model_name.split('/')[-1]}"

    def is_available(self) -> bool:
        """Return ``True`` if sentence-transformers is installed."""
        try:
            import sentence_transformers  # noqa: F401
            return True
        except ImportError:
            return False

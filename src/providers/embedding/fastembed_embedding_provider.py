"""Local ONNX-based embedding provider using fastembed.

Wraps the ``fastembed`` library to implement :class:`IEmbeddingProvider`
using ONNX Runtime, with **no PyTorch dependency**.  Runs on CPU with
a small RAM footprint, which makes it the better local tier for slim
container images.  Select it with ``LOCAL_EMBEDDING_BACKEND=fastembed``.
"""

from __future__ import annotations

from typing import Any

from src.providers.embedding.local_model_provider import LocalEmbeddingProvider

_DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
_BATCH_LIMIT = 64


class FastEmbedEmbeddingProvider(LocalEmbeddingProvider):
    """Embedding provider backed by fastembed (ONNX Runtime).

    Model weights download on first load, then come from ``cache_dir``.
    """

    def __init__(
        self,
        model_name: str | None = None,
        dimension: int = 384,
        cache_dir: str | None = None,
    ) -> None:
        super().__init__(model_name or _DEFAULT_MODEL, dimension, cache_dir)

    def _create_model(self) -> Any:
        from fastembed import TextEmbedding

        return TextEmbedding(model_name=self._model_name, cache_dir=self._cache_dir)

    def _encode(self, model: Any, texts: list[str]) -> Any:
        # fastembed yields one numpy array per input text.
        return list(model.embed(texts, batch_size=_BATCH_LIMIT))

    def get_provider_name(self) -> str:
        return f"fastembed_{self._model_name.split('/')[-1]}"

    def is_available(self) -> bool:
        """Return ``True`` if fastembed is installed."""
        try:
            import fastembed  # noqa: F401

            return True
        except ImportError:
            return False

"""Abstract base class for text-embedding backends.

Defines the contract a single backend fulfils: turn text into vectors or
raise :class:`~src.utils.errors.EmbeddingError`.  Backends never fall back
on their own; ordering and recovery live in
:class:`~src.services.embedding_service.EmbeddingService`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (src/providers/embedding/):
#   OpenAIEmbeddingProvider: remote API, needs OPENAI_API_KEY
#   SentenceTransformerEmbeddingProvider: local PyTorch model
#   FastEmbedEmbeddingProvider: local ONNX model
#   HashEmbeddingProvider: deterministic, cannot fail
class IEmbeddingProvider(ABC):
    """Contract for one tier of the embedding fallback chain."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            Already-preprocessed text strings.

        Returns
        -------
        list[list[float]]
            Vectors corresponding positionally to *texts*, each of length
            :meth:`get_dimension`.

        Raises
        ------
        src.utils.errors.EmbeddingError
            If the backend cannot produce vectors.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the produced vectors (384 by default)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the backend is configured and installed.

        Must not generate an embedding or perform network I/O.
        """

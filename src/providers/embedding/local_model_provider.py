"""Shared lazy-loading logic for local (in-process) embedding models.

Local models are expensive to load (download on first use, then hundreds
of MB of weights), so each provider instance loads its model at most once:
the load runs behind a :class:`~src.utils.concurrency.SingleFlight`, every
concurrent first caller awaits the same attempt, and a failed load is
remembered for the lifetime of the instance.  Loading and inference are
blocking, so both run in a worker thread.

Subclasses supply :meth:`_create_model` and :meth:`_encode`.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod
from typing import Any

import numpy as np
import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.concurrency import SingleFlight
from src.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)


class LocalEmbeddingProvider(IEmbeddingProvider):
    """Base class for providers that run a feature-extraction model locally."""

    def __init__(
        self,
        model_name: str,
        dimension: int = 384,
        cache_dir: str | None = None,
    ) -> None:
        self._model_name = model_name
        self._dimension = dimension
        self._cache_dir = cache_dir or None
        self._loader: SingleFlight[Any] = SingleFlight(self._load_model)

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _create_model(self) -> Any:
        """Construct the model object.  Runs in a worker thread."""

    @abstractmethod
    def _encode(self, model: Any, texts: list[str]) -> Any:
        """Return an array-like of shape (len(texts), dimension).  Runs in a worker thread."""

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _load_model(self) -> Any:
        logger.info("loading_local_embedding_model", model=self._model_name)
        try:
            model = await asyncio.to_thread(self._create_model)
        except Exception as exc:
            logger.warning(
                "local_embedding_model_load_failed",
                model=self._model_name,
                error=str(exc),
            )
            raise EmbeddingError(
                message=f"Failed to load local model '{self._model_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("local_embedding_model_loaded", model=self._model_name)
        return model

    async def load(self) -> Any:
        """Return the loaded model, loading it on first use.

        Raises
        ------
        EmbeddingError
            If the model failed to load (now or on an earlier attempt).
        """
        return await self._loader.get()

    @property
    def load_attempts(self) -> int:
        return self._loader.calls

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, returning L2-normalised vectors."""
        if not texts:
            return []

        model = await self.load()
        try:
            raw = await asyncio.to_thread(self._encode, model, texts)
            matrix = np.asarray(raw, dtype=np.float64)
        except Exception as exc:
            raise EmbeddingError(
                message=f"Local embedding error ({self._model_name}): {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if matrix.ndim != 2 or matrix.shape[1] != self._dimension:
            raise EmbeddingError(
                message=(
                    f"model '{self._model_name}' produced shape {matrix.shape}, "
                    f"expected (*, {self._dimension})"
                ),
                provider_name=self.get_provider_name(),
            )

        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0.0] = 1.0
        return (matrix / norms).tolist()

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

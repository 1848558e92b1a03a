"""Embedding service: the ordered fallback chain in front of all backends.

The service is the only embedding entry point the rest of feedlens uses.
It owns three tiers and tries them in order for every request:

    1. remote: OpenAI-compatible API, bounded by a timeout
    2. local: one or more in-process models (primary, then secondary)
    3. fallback: deterministic hash embedding, which cannot fail

The first tier that returns a vector of the configured dimension wins.  A
backend failure is never surfaced to callers; it is logged and the chain
advances.  Which tier served a request is returned in
:class:`~src.models.article.EmbeddingResult` and summarised by
:meth:`EmbeddingService.get_status`.

A service instance is built once per process (see ``src/main.py``) and
injected into the search engine, dedup gate and ingestion service, so the
lazily loaded local model is shared by all of them.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any

import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.article import EmbeddingResult
from src.providers.embedding.hash_embedding_provider import HashEmbeddingProvider
from src.utils.concurrency import throttled_gather
from src.utils.errors import EmbeddingError
from src.utils.text_normalizer import DEFAULT_MAX_EMBEDDING_CHARS, prepare_embedding_text

logger = structlog.get_logger(logger_name=__name__)


class EmbeddingService:
    """Embed text through the remote → local → hash fallback chain.

    Parameters
    ----------
    remote:
        Optional remote backend.  Skipped when ``is_available()`` is false
        (e.g. no API key).
    local:
        Local backends in priority order.
    fallback:
        Terminal backend; defaults to :class:`HashEmbeddingProvider`.
    dimension:
        Required vector length.  Vectors of any other length are rejected
        and the chain advances.
    max_chars:
        Preprocessing length cap applied before any backend sees the text.
    remote_timeout:
        Seconds to wait on the remote backend before treating it as failed.
    concurrency:
        Parallelism bound for :meth:`embed_many`.
    """

    def __init__(
        self,
        remote: IEmbeddingProvider | None = None,
        local: list[IEmbeddingProvider] | None = None,
        fallback: IEmbeddingProvider | None = None,
        dimension: int = 384,
        max_chars: int = DEFAULT_MAX_EMBEDDING_CHARS,
        remote_timeout: float = 10.0,
        concurrency: int = 4,
    ) -> None:
        self._remote = remote
        self._local = list(local or [])
        self._fallback = fallback or HashEmbeddingProvider(dimension)
        self._dimension = dimension
        self._max_chars = max_chars
        self._remote_timeout = remote_timeout
        self._concurrency = concurrency
        self._last_backend: str | None = None
        self._served: Counter[str] = Counter()

        if self._fallback.get_dimension() != dimension:
            raise ValueError(
                f"fallback backend produces {self._fallback.get_dimension()}-dim vectors, "
                f"expected {dimension}"
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str | None) -> EmbeddingResult:
        """Return a vector for *text*.  Never raises."""
        prepared = prepare_embedding_text(text, self._max_chars)

        tiers: list[tuple[IEmbeddingProvider, float | None]] = []
        if self._remote is not None:
            tiers.append((self._remote, self._remote_timeout))
        tiers.extend((backend, None) for backend in self._local)

        for backend, timeout in tiers:
            if not backend.is_available():
                continue
            vector = await self._try_backend(backend, prepared, timeout)
            if vector is not None:
                return self._served_by(backend, vector)

        vector = await self._fallback.embed_single(prepared)
        return self._served_by(self._fallback, vector)

    async def embed_many(self, texts: list[str]) -> list[EmbeddingResult]:
        """Embed several texts concurrently, preserving input order."""
        semaphore = asyncio.Semaphore(self._concurrency)
        results = await throttled_gather(
            [self.embed(text) for text in texts],
            semaphore=semaphore,
            return_exceptions=False,
        )
        return list(results)  # type: ignore[arg-type]

    def get_dimension(self) -> int:
        return self._dimension

    @property
    def last_backend(self) -> str | None:
        """Name of the backend that served the most recent request."""
        return self._last_backend

    def get_chain(self) -> list[str]:
        """Backend names in the order they are tried."""
        names: list[str] = []
        if self._remote is not None:
            names.append(self._remote.get_provider_name())
        names.extend(backend.get_provider_name() for backend in self._local)
        names.append(self._fallback.get_provider_name())
        return names

    def get_status(self) -> dict[str, Any]:
        """Observability snapshot: chain order, last backend, per-backend counts."""
        return {
            "chain": self.get_chain(),
            "last_backend": self._last_backend,
            "served": dict(self._served),
            "dimension": self._dimension,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _try_backend(
        self,
        backend: IEmbeddingProvider,
        text: str,
        timeout: float | None,
    ) -> list[float] | None:
        name = backend.get_provider_name()
        try:
            if timeout is not None:
                vector = await asyncio.wait_for(backend.embed_single(text), timeout=timeout)
            else:
                vector = await backend.embed_single(text)
        except asyncio.TimeoutError:
            logger.warning("embedding_backend_timeout", backend=name, timeout=timeout)
            return None
        except EmbeddingError as exc:
            logger.warning("embedding_backend_failed", backend=name, error=str(exc))
            return None
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "embedding_backend_error",
                backend=name,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None

        if len(vector) != self._dimension:
            logger.warning(
                "embedding_dimension_rejected",
                backend=name,
                got=len(vector),
                expected=self._dimension,
            )
            return None
        return list(vector)

    def _served_by(self, backend: IEmbeddingProvider, vector: list[float]) -> EmbeddingResult:
        name = backend.get_provider_name()
        if name != self._last_backend:
            preferred = self._preferred_backend()
            if name != preferred:
                logger.warning("embedding_degraded", backend=name, preferred=preferred)
            else:
                logger.info("embedding_backend_selected", backend=name)
        self._last_backend = name
        self._served[name] += 1
        return EmbeddingResult(vector=vector, backend=name)

    def _preferred_backend(self) -> str:
        if self._remote is not None and self._remote.is_available():
            return self._remote.get_provider_name()
        for backend in self._local:
            if backend.is_available():
                return backend.get_provider_name()
        return self._fallback.get_provider_name()

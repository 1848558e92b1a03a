"""OpenAI-compatible embedding provider adapter (remote tier).

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports real OpenAI and OpenAI-compatible hosts (TogetherAI, Fireworks)
via ``openai_base_url``.  ``text-embedding-3-*`` models are asked for the
index dimension directly through the ``dimensions`` parameter; other models
must natively produce vectors of that size or every call is rejected.
"""

from __future__ import annotations

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

# Models that accept the ``dimensions`` request parameter.
_SHORTENABLE_MODELS = frozenset({"text-embedding-3-small", "text-embedding-3-large"})


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    The client is built with ``max_retries=0`` and the configured timeout:
    a slow remote must advance the fallback chain, not stall the caller
    behind SDK retries.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_embedding_model or "text-embedding-3-small"
        self._dimension = settings.embedding_dimension

        client_kwargs: dict = {
            "api_key": self._api_key or "unset",
            "timeout": settings.embedding_remote_timeout,
            "max_retries": 0,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Splits into batches of 2048.  Any API, transport, or shape error is
        raised as :class:`EmbeddingError`.
        """
        if not texts:
            return []

        request_kwargs: dict = {"model": self._model}
        if self._model in _SHORTENABLE_MODELS:
            request_kwargs["dimensions"] = self._dimension

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
                batch = texts[start : start + _OPENAI_BATCH_LIMIT]
                response = await self._client.embeddings.create(input=batch, **request_kwargs)
                batch_embeddings = [list(item.embedding) for item in response.data]
                if len(batch_embeddings) != len(batch):
                    raise EmbeddingError(
                        message=(
                            f"expected {len(batch)} embeddings, got {len(batch_embeddings)}"
                        ),
                        provider_name=self.get_provider_name(),
                    )
                all_embeddings.extend(batch_embeddings)
                logger.debug(
                    "openai_embedding_batch",
                    model=self._model,
                    provider=self._provider_label,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except (AttributeError, TypeError) as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} returned a malformed response: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        for vector in all_embeddings:
            if len(vector) != self._dimension:
                raise EmbeddingError(
                    message=(
                        f"model '{self._model}' returned {len(vector)}-dim vectors, "
                        f"index expects {self._dimension}"
                    ),
                    provider_name=self.get_provider_name(),
                )
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

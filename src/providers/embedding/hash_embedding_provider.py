"""Deterministic hash-seeded embedding provider (last tier of the chain).

Produces a pseudo-random unit vector seeded from the text itself, so the
same input always maps to the same vector even when no model and no API is
reachable.  Deduplication and tests therefore stay reproducible under a
total backend outage.  The vectors carry no semantics beyond identity:
equal texts match exactly, different texts are close to orthogonal.
Characters outside the Basic Multilingual Plane count as their two
surrogate code units, so seeds agree with UTF-16 string runtimes.

Generator::

    seed = sum of UTF-16 code units of text.lower()
    x    = sin(seed) * 10000; seed += 1
    v_i  = frac(x) * 2 - 1          # for i in range(dimension)
    v    = v / ||v||
"""

from __future__ import annotations

import math

from src.interfaces.embedding_provider import IEmbeddingProvider

_DEFAULT_DIMENSION = 384


def _utf16_unit_sum(text: str) -> int:
    encoded = text.encode("utf-16-le", errors="surrogatepass")
    return sum(
        int.from_bytes(encoded[i : i + 2], "little") for i in range(0, len(encoded), 2)
    )


def hash_embedding(text: str, dimension: int = _DEFAULT_DIMENSION) -> list[float]:
    """Return the deterministic unit vector for *text*."""
    seed = _utf16_unit_sum(text.lower())
    values: list[float] = []
    for _ in range(dimension):
        x = math.sin(seed) * 10000
        seed += 1
        values.append((x - math.floor(x)) * 2 - 1)

    magnitude = math.sqrt(sum(v * v for v in values))
    if magnitude == 0.0:
        # Unreachable for dimension > 1; keeps the unit-norm invariant anyway.
        return [1.0] + [0.0] * (dimension - 1)
    return [v / magnitude for v in values]


class HashEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider that never fails and never touches the network."""

    def __init__(self, dimension: int = _DEFAULT_DIMENSION) -> None:
        self._dimension = dimension

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [hash_embedding(text, self._dimension) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        return hash_embedding(text, self._dimension)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "hash_fallback"

    def is_available(self) -> bool:
        return True

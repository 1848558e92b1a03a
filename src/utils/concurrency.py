"""Shared concurrency primitives for embedding and ingestion.

Two patterns are exposed:

1. **throttled_gather** -- ``asyncio.gather`` with every awaitable wrapped in
   a semaphore acquire/release.  Used by bulk embedding and by concurrent
   per-source ingestion so a large batch cannot flood a remote embedding API
   or the vector index.

2. **SingleFlight** -- run an async initializer at most once, with every
   concurrent caller awaiting the same in-flight attempt.  Used for the lazy
   local-model load: loading all-MiniLM twice under a burst of first requests
   wastes seconds and hundreds of MB.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, TypeVar

_T = TypeVar("_T")

_DEFAULT_CONCURRENCY = 4


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore for concurrency control.  A fresh semaphore of
        size 4 is created per call when omitted.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(_DEFAULT_CONCURRENCY)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


class SingleFlight(Generic[_T]):
    """Memoize the outcome of one async initializer.

    The first caller runs *factory* under a lock; later and concurrent
    callers get the stored result.  A failure is memoized too, so a model
    that cannot load is not retried on every request.  :meth:`reset`
    forgets the outcome.
    """

    def __init__(self, factory: Callable[[], Awaitable[_T]]) -> None:
        self._factory = factory
        self._lock = asyncio.Lock()
        self._done = False
        self._value: _T | None = None
        self._error: BaseException | None = None
        self._calls = 0

    @property
    def done(self) -> bool:
        return self._done

    @property
    def calls(self) -> int:
        """Number of times the factory actually ran."""
        return self._calls

    async def get(self) -> _T:
        if not self._done:
            async with self._lock:
                if not self._done:
                    self._calls += 1
                    try:
                        self._value = await self._factory()
                    except Exception as exc:
                        self._error = exc
                    self._done = True
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    def reset(self) -> None:
        self._done = False
        self._value = None
        self._error = None

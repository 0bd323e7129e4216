"""Short-lived coalescing cache for external quote requests."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Hashable, TypeVar

from .constants import DEFAULT_QUOTE_CACHE_TTL

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QuoteCache:
    """Share in-flight quote requests between callers for ``ttl`` seconds.

    The first caller for a key starts the fetch as an :class:`asyncio.Task`;
    every caller arriving within the TTL awaits that same task. Entries
    expire by the injected clock whether or not they are read, and a fetch
    that fails is dropped at once so the error is not replayed.

    Parameters
    ----------
    ttl : float
        Entry lifetime in seconds.
    clock : callable
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_QUOTE_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, asyncio.Task]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        self._purge()
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_fetch(self, key: Hashable, fetcher: Callable[[], Awaitable[T]]) -> T:
        """Return the result for *key*, calling *fetcher* only on a miss."""
        self._purge()
        entry = self._entries.get(key)
        if entry is not None:
            self.hits += 1
            logger.debug("quote cache hit for %r", key)
            task = entry[1]
        else:
            # No await between lookup and insert: concurrent callers see the entry.
            self.misses += 1
            logger.debug("quote cache miss for %r", key)
            task = asyncio.ensure_future(fetcher())
            self._entries[key] = (self._clock() + self.ttl, task)
            task.add_done_callback(lambda t, k=key: self._on_done(k, t))
            asyncio.get_running_loop().call_later(self.ttl, self._evict, key, task)
        return await asyncio.shield(task)

    def _purge(self) -> None:
        now = self._clock()
        expired = [k for k, (expires, _) in self._entries.items() if expires <= now]
        for key in expired:
            del self._entries[key]

    def _evict(self, key: Hashable, task: asyncio.Task) -> None:
        entry = self._entries.get(key)
        if entry is not None and entry[1] is task:
            del self._entries[key]

    def _on_done(self, key: Hashable, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is not None:
            self._evict(key, task)

"""Unit tests for the coalescing quote cache."""

import asyncio

import pytest

from lpmigrate.cache import QuoteCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class Counter:
    """Fetcher that counts invocations and can be held open."""

    def __init__(self, result="quote", error=None):
        self.result = result
        self.error = error
        self.calls = 0
        self.release = None

    async def __call__(self):
        self.calls += 1
        if self.release is not None:
            await self.release.wait()
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return f"{self.result}-{self.calls}"


def test_miss_then_hit():
    async def run():
        cache = QuoteCache(ttl=10, clock=FakeClock())
        fetch = Counter()
        first = await cache.get_or_fetch(("pool", 1), fetch)
        second = await cache.get_or_fetch(("pool", 1), fetch)
        return cache, fetch, first, second

    cache, fetch, first, second = asyncio.run(run())
    assert first == second == "quote-1"
    assert fetch.calls == 1
    assert cache.hits == 1
    assert cache.misses == 1


def test_concurrent_callers_share_one_fetch():
    async def run():
        cache = QuoteCache(ttl=10, clock=FakeClock())
        fetch = Counter()
        fetch.release = asyncio.Event()
        waiters = [asyncio.ensure_future(cache.get_or_fetch("key", fetch)) for _ in range(5)]
        await asyncio.sleep(0)
        fetch.release.set()
        return fetch, await asyncio.gather(*waiters)

    fetch, results = asyncio.run(run())
    assert fetch.calls == 1
    assert results == ["quote-1"] * 5


def test_distinct_keys_fetch_separately():
    async def run():
        cache = QuoteCache(ttl=10, clock=FakeClock())
        fetch = Counter()
        a = await cache.get_or_fetch(("pool", 1, True), fetch)
        b = await cache.get_or_fetch(("pool", 1, False), fetch)
        return cache, a, b

    cache, a, b = asyncio.run(run())
    assert a != b
    assert len(cache) == 2


def test_entries_expire_by_clock():
    async def run():
        clock = FakeClock()
        cache = QuoteCache(ttl=0.3, clock=clock)
        fetch = Counter()
        first = await cache.get_or_fetch("key", fetch)
        clock.now += 0.31
        second = await cache.get_or_fetch("key", fetch)
        return fetch, first, second

    fetch, first, second = asyncio.run(run())
    assert fetch.calls == 2
    assert first != second


def test_expired_entries_are_purged_without_reads():
    async def run():
        clock = FakeClock()
        cache = QuoteCache(ttl=1, clock=clock)
        await cache.get_or_fetch("a", Counter())
        await cache.get_or_fetch("b", Counter())
        before = len(cache)
        clock.now += 5
        return before, len(cache)

    before, after = asyncio.run(run())
    assert before == 2
    assert after == 0


def test_failed_fetch_is_not_cached():
    async def run():
        cache = QuoteCache(ttl=10, clock=FakeClock())
        failing = Counter(error=ValueError("quoter reverted"))
        with pytest.raises(ValueError, match="quoter reverted"):
            await cache.get_or_fetch("key", failing)
        ok = Counter()
        result = await cache.get_or_fetch("key", ok)
        return cache, result

    cache, result = asyncio.run(run())
    assert result == "quote-1"
    assert cache.misses == 2


def test_concurrent_callers_all_see_failure():
    async def run():
        cache = QuoteCache(ttl=10, clock=FakeClock())
        failing = Counter(error=RuntimeError("boom"))
        failing.release = asyncio.Event()
        waiters = [asyncio.ensure_future(cache.get_or_fetch("key", failing)) for _ in range(3)]
        await asyncio.sleep(0)
        failing.release.set()
        return failing, await asyncio.gather(*waiters, return_exceptions=True)

    failing, results = asyncio.run(run())
    assert failing.calls == 1
    assert all(isinstance(r, RuntimeError) for r in results)


def test_clear():
    async def run():
        cache = QuoteCache(ttl=10, clock=FakeClock())
        await cache.get_or_fetch("key", Counter())
        cache.clear()
        return len(cache)

    assert asyncio.run(run()) == 0

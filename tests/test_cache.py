import asyncio
from datetime import date

import pytest

from policy_valuation.core.cache import RequestCounter, SnapshotCache, snapshot_key
from policy_valuation.core.errors import CollaboratorError
from policy_valuation.data.base import DEFAULT_MARKET_SNAPSHOT, MarketSnapshot


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_snapshot_key_is_normalized():
    day = date(2024, 5, 1)
    assert snapshot_key("  AIA ", "Savings  Plan", day) == snapshot_key("aia", "savings plan", day)
    assert snapshot_key("AIA", "Savings Plan", day) != snapshot_key("AIA", "Savings Plan", date(2024, 5, 2))


class TestSnapshotCache:
    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_fetch(self):
        cache = SnapshotCache(ttl_seconds=300)
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.05)
            return DEFAULT_MARKET_SNAPSHOT

        results = await asyncio.gather(*(cache.get_or_fetch("k", fetch) for _ in range(5)))
        assert calls == 1
        assert all(r == DEFAULT_MARKET_SNAPSHOT for r in results)
        assert not cache.inflight("k")

    @pytest.mark.asyncio
    async def test_fresh_entry_is_reused_until_expiry(self):
        clock = FakeClock()
        cache = SnapshotCache(ttl_seconds=300, timer=clock)
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            return DEFAULT_MARKET_SNAPSHOT

        await cache.get_or_fetch("k", fetch)
        clock.now = 299
        await cache.get_or_fetch("k", fetch)
        assert calls == 1

        clock.now = 301
        assert cache.peek("k") is None
        assert cache.last_good("k") == DEFAULT_MARKET_SNAPSHOT
        await cache.get_or_fetch("k", fetch)
        assert calls == 2

    @pytest.mark.asyncio
    async def test_failures_propagate_and_are_not_cached(self):
        cache = SnapshotCache()
        attempts = 0

        async def flaky():
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("boom")
            return MarketSnapshot(0.05, 0.02, 1.0, 0.2)

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", flaky)
        assert cache.peek("k") is None
        assert cache.last_good("k") is None

        snapshot = await cache.get_or_fetch("k", flaky)
        assert snapshot.interest_rate == 0.05
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_non_finite_snapshot_is_never_cached(self):
        cache = SnapshotCache()

        async def broken():
            return MarketSnapshot(0.05, float("inf"), 1.0, 0.2)

        with pytest.raises(CollaboratorError):
            await cache.get_or_fetch("k", broken)
        assert cache.peek("k") is None
        assert cache.last_good("k") is None

    @pytest.mark.asyncio
    async def test_cancelling_sole_waiter_cancels_fetch(self):
        cache = SnapshotCache()
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def slow():
            started.set()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return DEFAULT_MARKET_SNAPSHOT

        waiter = asyncio.ensure_future(cache.get_or_fetch("k", slow))
        await started.wait()
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        await asyncio.wait_for(cancelled.wait(), timeout=1)
        await asyncio.sleep(0)
        assert not cache.inflight("k")

    @pytest.mark.asyncio
    async def test_fetch_survives_while_another_waiter_remains(self):
        cache = SnapshotCache()
        release = asyncio.Event()
        calls = 0

        async def gated():
            nonlocal calls
            calls += 1
            await release.wait()
            return DEFAULT_MARKET_SNAPSHOT

        first = asyncio.ensure_future(cache.get_or_fetch("k", gated))
        second = asyncio.ensure_future(cache.get_or_fetch("k", gated))
        await asyncio.sleep(0.01)
        first.cancel()
        await asyncio.sleep(0.01)
        release.set()

        assert await second == DEFAULT_MARKET_SNAPSHOT
        assert first.cancelled()
        assert calls == 1


def test_request_counter_counts_per_key():
    counter = RequestCounter()
    assert [counter.hit("a") for _ in range(3)] == [1, 2, 3]
    assert counter.hit("b") == 1

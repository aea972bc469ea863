"""
Tests for vidstream.cache -- TTL cache with request coalescing.

Time is controlled with an injected fake clock; concurrency with
``asyncio.Event`` gates so the fetcher settles exactly when a test says so.
"""

import asyncio

import pytest

from vidstream.cache import (
    CacheEntry,
    RequestCache,
    clear_cache,
    fetch_with_cache,
    get_default_cache,
    invalidate_cache,
)
from vidstream.exceptions import FetchTimeoutError


class CountingFetcher:
    """Fetcher that counts invocations and optionally waits on a gate."""

    def __init__(self, value="payload", gate=None, error=None, on_call=None):
        self.calls = 0
        self.value = value
        self.gate = gate
        self.error = error
        self.on_call = on_call

    async def __call__(self):
        self.calls += 1
        if self.on_call is not None:
            self.on_call()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.value


# ===========================================================================
# CacheEntry
# ===========================================================================


class TestCacheEntry:

    def test_expiry_is_inclusive(self):
        entry = CacheEntry(data=1, expires_at=100.0)
        assert not entry.is_expired(99.999)
        assert entry.is_expired(100.0)


# ===========================================================================
# TTL behaviour
# ===========================================================================


class TestTtl:

    @pytest.mark.asyncio
    async def test_hit_within_ttl_skips_fetcher(self, fake_clock):
        cache = RequestCache(default_ttl=300, clock=fake_clock)
        fetcher = CountingFetcher()

        assert await cache.fetch("k", fetcher) == "payload"
        fake_clock.advance(299.9)
        assert await cache.fetch("k", fetcher) == "payload"

        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_refetch_at_exact_expiry(self, fake_clock):
        cache = RequestCache(default_ttl=300, clock=fake_clock)
        fetcher = CountingFetcher()

        await cache.fetch("k", fetcher)
        fake_clock.advance(300)
        await cache.fetch("k", fetcher)

        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_per_call_ttl_overrides_default(self, fake_clock):
        cache = RequestCache(default_ttl=300, clock=fake_clock)
        fetcher = CountingFetcher()

        await cache.fetch("k", fetcher, ttl=10)
        fake_clock.advance(10)
        await cache.fetch("k", fetcher, ttl=10)

        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_expiry_measured_from_call_start(self, fake_clock):
        """A slow fetch does not extend the entry's lifetime."""
        cache = RequestCache(default_ttl=300, clock=fake_clock)
        fetcher = CountingFetcher(on_call=lambda: fake_clock.advance(100))

        await cache.fetch("k", fetcher)  # started at 1000, finished at 1100
        fake_clock.advance(199)  # 1299
        await cache.fetch("k", fetcher)
        assert fetcher.calls == 1

        fake_clock.advance(1)  # 1300
        await cache.fetch("k", fetcher)
        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_zero_ttl_never_serves_from_cache(self, fake_clock):
        cache = RequestCache(default_ttl=0, clock=fake_clock)
        fetcher = CountingFetcher()

        await cache.fetch("k", fetcher)
        await cache.fetch("k", fetcher)

        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_negative_ttl_rejected(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        with pytest.raises(ValueError):
            await cache.fetch("k", CountingFetcher(), ttl=-1)

    def test_negative_default_ttl_rejected(self):
        with pytest.raises(ValueError):
            RequestCache(default_ttl=-5)

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        first = CountingFetcher("a")
        second = CountingFetcher("b")

        assert await cache.fetch("a", first) == "a"
        assert await cache.fetch("b", second) == "b"
        assert len(cache) == 2


# ===========================================================================
# Coalescing
# ===========================================================================


class TestCoalescing:

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_fetch(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        gate = asyncio.Event()
        value = {"shared": True}
        fetcher = CountingFetcher(value=value, gate=gate)

        tasks = [asyncio.create_task(cache.fetch("k", fetcher)) for _ in range(5)]
        await asyncio.sleep(0)
        assert cache.is_pending("k")

        gate.set()
        results = await asyncio.gather(*tasks)

        assert fetcher.calls == 1
        assert all(result is value for result in results)
        assert not cache.is_pending("k")

    @pytest.mark.asyncio
    async def test_rejection_relayed_to_every_caller(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        gate = asyncio.Event()
        error = RuntimeError("upstream down")
        fetcher = CountingFetcher(gate=gate, error=error)

        tasks = [asyncio.create_task(cache.fetch("k", fetcher)) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert fetcher.calls == 1
        assert all(result is error for result in results)

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        failing = CountingFetcher(error=RuntimeError("boom"))

        with pytest.raises(RuntimeError, match="boom"):
            await cache.fetch("k", failing)

        assert cache.peek("k") is None
        assert not cache.is_pending("k")

        working = CountingFetcher("ok")
        assert await cache.fetch("k", working) == "ok"
        assert working.calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_fetch(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        gate = asyncio.Event()
        fetcher = CountingFetcher(gate=gate)

        first = asyncio.create_task(cache.fetch("k", fetcher))
        second = asyncio.create_task(cache.fetch("k", fetcher))
        await asyncio.sleep(0)

        first.cancel()
        gate.set()

        assert await second == "payload"
        assert first.cancelled()
        assert cache.peek("k") == "payload"


# ===========================================================================
# Invalidation
# ===========================================================================


class TestInvalidation:

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        fetcher = CountingFetcher()

        await cache.fetch("k", fetcher)
        cache.invalidate("k")
        await cache.fetch("k", fetcher)

        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_during_fetch_discards_write_back(self, fake_clock):
        """Awaiters still get the value, but the cache stays empty."""
        cache = RequestCache(clock=fake_clock)
        gate = asyncio.Event()
        fetcher = CountingFetcher(gate=gate)

        task = asyncio.create_task(cache.fetch("k", fetcher))
        await asyncio.sleep(0)
        cache.invalidate("k")
        assert not cache.is_pending("k")

        gate.set()
        assert await task == "payload"
        assert cache.peek("k") is None

    @pytest.mark.asyncio
    async def test_stale_fetch_does_not_remove_newer_marker(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        old_gate = asyncio.Event()
        new_gate = asyncio.Event()
        old = CountingFetcher("old", gate=old_gate)
        new = CountingFetcher("new", gate=new_gate)

        old_task = asyncio.create_task(cache.fetch("k", old))
        await asyncio.sleep(0)
        cache.invalidate("k")

        new_task = asyncio.create_task(cache.fetch("k", new))
        await asyncio.sleep(0)

        old_gate.set()
        assert await old_task == "old"
        assert cache.is_pending("k")

        new_gate.set()
        assert await new_task == "new"
        assert cache.peek("k") == "new"

    @pytest.mark.asyncio
    async def test_clear_drops_everything(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        await cache.fetch("a", CountingFetcher("a"))
        await cache.fetch("b", CountingFetcher("b"))

        cache.clear()

        assert len(cache) == 0
        assert cache.peek("a") is None

    @pytest.mark.asyncio
    async def test_clear_during_fetch_discards_write_back(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        gate = asyncio.Event()

        task = asyncio.create_task(cache.fetch("k", CountingFetcher(gate=gate)))
        await asyncio.sleep(0)
        cache.clear()
        gate.set()

        assert await task == "payload"
        assert cache.peek("k") is None

    @pytest.mark.asyncio
    async def test_invalidated_keys_leave_no_bookkeeping(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        for i in range(1000):
            await cache.fetch(f"k{i}", CountingFetcher(i))
            cache.invalidate(f"k{i}")

        assert len(cache) == 0
        assert vars(cache)["_store"] == {}
        assert vars(cache)["_pending"] == {}

        await cache.fetch("again", CountingFetcher())
        cache.clear()

        assert set(vars(cache)) == {"default_ttl", "_clock", "_store", "_pending"}
        assert vars(cache)["_store"] == {}
        assert vars(cache)["_pending"] == {}


# ===========================================================================
# Deadlines
# ===========================================================================


class TestTimeout:

    @pytest.mark.asyncio
    async def test_timeout_raises_and_releases_key(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        gate = asyncio.Event()
        fetcher = CountingFetcher(gate=gate)

        with pytest.raises(FetchTimeoutError) as exc_info:
            await cache.fetch("k", fetcher, timeout=0.01)

        assert exc_info.value.key == "k"
        assert not cache.is_pending("k")

        replacement = asyncio.create_task(cache.fetch("k", fetcher))
        await asyncio.sleep(0)
        gate.set()

        assert await replacement == "payload"
        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_other_awaiters_keep_waiting_after_timeout(self, fake_clock):
        cache = RequestCache(clock=fake_clock)
        gate = asyncio.Event()
        fetcher = CountingFetcher(gate=gate)

        patient = asyncio.create_task(cache.fetch("k", fetcher))
        await asyncio.sleep(0)

        with pytest.raises(FetchTimeoutError):
            await cache.fetch("k", fetcher, timeout=0.01)

        gate.set()
        assert await patient == "payload"
        assert fetcher.calls == 1
        # The timed-out fetch no longer owns the key, so it is not cached.
        assert cache.peek("k") is None


# ===========================================================================
# Process-default helpers
# ===========================================================================


class TestModuleHelpers:

    @pytest.fixture(autouse=True)
    def _isolate_default_cache(self):
        clear_cache()
        yield
        clear_cache()

    @pytest.mark.asyncio
    async def test_fetch_with_cache_uses_default_instance(self):
        fetcher = CountingFetcher("v")

        assert await fetch_with_cache("module-key", fetcher) == "v"
        assert await fetch_with_cache("module-key", fetcher) == "v"

        assert fetcher.calls == 1
        assert get_default_cache().peek("module-key") == "v"

    @pytest.mark.asyncio
    async def test_invalidate_cache(self):
        fetcher = CountingFetcher("v")

        await fetch_with_cache("module-key", fetcher)
        invalidate_cache("module-key")
        await fetch_with_cache("module-key", fetcher)

        assert fetcher.calls == 2

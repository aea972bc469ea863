"""
In-memory request cache with per-key request coalescing.

``RequestCache.fetch()`` either returns a fresh cached value, joins the
fetch already in flight for the same key, or starts a new fetch and stores
its result for ``ttl`` seconds. At most one fetch per key is in flight at
any instant; every caller that joins it observes the same value or the
same exception.

The cache runs on a single asyncio event loop. The check-then-register
step in ``fetch()`` contains no ``await``, so no two fetches for one key
can start concurrently.

Invalidation rule: a fetch writes its result back only while its own task
is still the registered in-flight marker for the key. ``invalidate()``,
``clear()`` and a caller deadline all drop that marker, so a fetch that
settles afterwards hands its value to its awaiters without writing the
cache, and never removes a newer fetch's marker.

Module-level helpers (``fetch_with_cache``, ``invalidate_cache``,
``clear_cache``) delegate to a process-default instance.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from vidstream.config import DEFAULT_CACHE_TTL_SECONDS
from vidstream.exceptions import FetchTimeoutError

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and the clock reading at which it expires."""

    data: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class RequestCache:
    """Time-expiring key/value cache with at-most-one in-flight fetch per key.

    Args:
        default_ttl: Lifetime of an entry in seconds (default 5 minutes).
        clock: Zero-argument callable returning the current time in
            seconds. Defaults to ``time.monotonic``; tests inject a fake.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if default_ttl < 0:
            raise ValueError("default_ttl must be non-negative")
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._store: Dict[str, CacheEntry] = {}
        self._pending: Dict[str, "asyncio.Future[Any]"] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch(
        self,
        key: str,
        fetcher: Fetcher,
        ttl: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Return the value for *key*, invoking *fetcher* only on a true miss.

        Args:
            key: Opaque string identifying the logical resource.
            fetcher: Zero-argument coroutine function producing the value.
            ttl: Entry lifetime in seconds; ``None`` uses ``default_ttl``.
            timeout: Optional deadline in seconds for *this caller*. On
                expiry the in-flight marker is dropped so that new callers
                start a fresh fetch, and ``FetchTimeoutError`` is raised.
                Other callers already waiting keep waiting for the original
                fetch.

        Raises:
            Whatever *fetcher* raises, unchanged, to every joined caller.
            FetchTimeoutError: When *timeout* elapses first.
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl < 0:
            raise ValueError("ttl must be non-negative")

        now = self._clock()
        entry = self._store.get(key)
        if entry is not None and not entry.is_expired(now):
            logger.debug("Cache hit: %s", key)
            return entry.data

        task = self._pending.get(key)
        if task is not None:
            logger.debug("Joining in-flight fetch: %s", key)
        else:
            task = self._start(key, fetcher, now, ttl)

        # Shielded so a cancelled caller never cancels the shared fetch.
        if timeout is None:
            return await asyncio.shield(task)

        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            if self._pending.get(key) is task:
                del self._pending[key]
            logger.warning("Fetch for %s exceeded %.1fs deadline", key, timeout)
            raise FetchTimeoutError(key, timeout) from None

    def peek(self, key: str) -> Optional[Any]:
        """Return the cached value for *key* if fresh, without fetching."""
        entry = self._store.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.data

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._store)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def invalidate(self, key: str) -> None:
        """Drop the entry and the in-flight marker for *key*.

        The underlying fetch is not cancelled; its current awaiters still
        get its result, but it will not repopulate the cache.
        """
        self._store.pop(key, None)
        self._pending.pop(key, None)

    def clear(self) -> None:
        """Drop every entry and every in-flight marker."""
        self._store.clear()
        self._pending.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _start(
        self, key: str, fetcher: Fetcher, now: float, ttl: float
    ) -> "asyncio.Future[Any]":
        task = asyncio.ensure_future(self._run(key, fetcher, now, ttl))
        task.add_done_callback(_retrieve_exception)
        self._pending[key] = task
        logger.debug("Cache miss, fetching: %s", key)
        return task

    async def _run(
        self, key: str, fetcher: Fetcher, started_at: float, ttl: float
    ) -> Any:
        own_task = asyncio.current_task()
        try:
            data = await fetcher()
            if self._pending.get(key) is own_task:
                self._store[key] = CacheEntry(data=data, expires_at=started_at + ttl)
            else:
                logger.debug("Discarding result for invalidated key: %s", key)
            return data
        finally:
            if self._pending.get(key) is own_task:
                del self._pending[key]


def _retrieve_exception(task: "asyncio.Task[Any]") -> None:
    # Marks the exception as retrieved when every awaiter timed out; joined
    # callers still receive it from the task itself.
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Fetch failed: %r", task.exception())


# ===========================================================================
# PROCESS-DEFAULT INSTANCE
# ===========================================================================

_default_cache = RequestCache()


def get_default_cache() -> RequestCache:
    return _default_cache


async def fetch_with_cache(
    key: str,
    fetcher: Fetcher,
    ttl: float = DEFAULT_CACHE_TTL_SECONDS,
) -> Any:
    """Fetch through the process-default cache (see ``RequestCache.fetch``)."""
    return await _default_cache.fetch(key, fetcher, ttl=ttl)


def invalidate_cache(key: str) -> None:
    _default_cache.invalidate(key)


def clear_cache() -> None:
    _default_cache.clear()

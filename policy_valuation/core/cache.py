import asyncio
import json
import logging
import time
from datetime import date
from functools import partial
from typing import Awaitable, Callable, Dict, Optional

import redis.asyncio as aioredis
from cachetools import LRUCache, TTLCache
from redis.exceptions import RedisError

from .config import settings
from .errors import CollaboratorError
from .utils import normalize_key
from ..data.base import MarketSnapshot

logger = logging.getLogger(__name__)


def snapshot_key(company: str, product_type: str, day: date) -> str:
    return f"market:{normalize_key(company)}:{normalize_key(product_type)}:{day.isoformat()}"


class SnapshotCache:
    """
    Market snapshots keyed by company + product + day.

    Fresh entries live in a TTLCache. The last good snapshot per key is kept
    past expiry as a fallback for failed fetches. Concurrent misses on the
    same key share one in-flight fetch; it is cancelled only when every
    caller waiting on it has gone away.

    An optional Redis backend shares fresh entries across processes.
    """
    def __init__(
        self,
        ttl_seconds: int = settings.MARKET_CACHE_TTL_SECONDS,
        maxsize: int = settings.MARKET_CACHE_MAXSIZE,
        backend: Optional[aioredis.Redis] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.backend = backend
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)
        self._last_good: LRUCache = LRUCache(maxsize=maxsize)
        self._inflight: Dict[str, asyncio.Task] = {}
        self._waiters: Dict[str, int] = {}

    def peek(self, key: str) -> Optional[MarketSnapshot]:
        return self._fresh.get(key)

    def last_good(self, key: str) -> Optional[MarketSnapshot]:
        return self._last_good.get(key)

    def put(self, key: str, snapshot: MarketSnapshot) -> None:
        self._fresh[key] = snapshot
        self._last_good[key] = snapshot

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[MarketSnapshot]]) -> MarketSnapshot:
        hit = self._fresh.get(key)
        if hit is not None:
            return hit
        shared = await self._backend_get(key)
        if shared is not None:
            self.put(key, shared)
            return shared

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, fetch))
            self._inflight[key] = task
            task.add_done_callback(partial(self._forget, key))
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done() and self._waiters.get(key) == 1:
                task.cancel()
            raise
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]

    def inflight(self, key: str) -> bool:
        return key in self._inflight

    async def aclose(self) -> None:
        for task in list(self._inflight.values()):
            task.cancel()
        if self.backend is not None:
            await self.backend.aclose()

    async def _load(self, key: str, fetch: Callable[[], Awaitable[MarketSnapshot]]) -> MarketSnapshot:
        snapshot = await fetch()
        # Nothing non-finite is ever cached, fresh or as a fallback
        if not snapshot.is_finite():
            raise CollaboratorError("market", "provider returned non-finite values")
        self.put(key, snapshot)
        await self._backend_set(key, snapshot)
        return snapshot

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            task.exception()  # consumed by waiters; mark retrieved

    async def _backend_get(self, key: str) -> Optional[MarketSnapshot]:
        if self.backend is None:
            return None
        try:
            raw = await self.backend.get(key)
        except RedisError as exc:
            logger.warning("shared cache read failed for %s: %s", key, exc)
            return None
        if not raw:
            return None
        snapshot = MarketSnapshot(**json.loads(raw))
        return snapshot if snapshot.is_finite() else None

    async def _backend_set(self, key: str, snapshot: MarketSnapshot) -> None:
        if self.backend is None:
            return
        try:
            await self.backend.setex(key, self.ttl_seconds, json.dumps(snapshot.to_dict()))
        except RedisError as exc:
            logger.warning("shared cache write failed for %s: %s", key, exc)


class RequestCounter:
    """Per-minute hit counter for rate limiting."""
    def __init__(self, maxsize: int = 4096, ttl_seconds: int = 60):
        self._hits: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds)

    def hit(self, key: str) -> int:
        count = self._hits.get(key, 0) + 1
        self._hits[key] = count
        return count


def snapshot_cache() -> SnapshotCache:
    """
    Factory: Redis-shared when enabled, otherwise purely in-process.
    """
    backend = None
    if settings.USE_REDIS:
        backend = aioredis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return SnapshotCache(backend=backend)

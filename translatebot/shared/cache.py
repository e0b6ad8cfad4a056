"""In-process translation memo cache.

Uses cachetools.TTLCache for zero-infrastructure caching: entries are kept in
least-recently-used order, bounded by *maxsize*, and an entry older than *ttl*
reads as absent even before a sweep removes it.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]


class _CountingTTLCache(TTLCache):
    """TTLCache that counts capacity evictions."""

    def __init__(self, maxsize: int, ttl: float, timer: Callable[[], float]) -> None:
        super().__init__(maxsize=maxsize, ttl=ttl, timer=timer)
        self.evictions = 0

    def popitem(self) -> Any:
        item = super().popitem()
        self.evictions += 1
        return item


class TranslationCache:
    """Memo of translated text keyed by ``(source_lang, target_lang, text)``.

    A ``capacity`` of 0 disables caching. ``clock`` is injectable so tests can
    drive expiry with a simulated time source.
    """

    def __init__(
        self,
        capacity: int = 100,
        ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.capacity = capacity
        self.ttl = ttl
        self._cache = _CountingTTLCache(maxsize=max(capacity, 1), ttl=ttl, timer=clock)
        self._locks: dict[CacheKey, asyncio.Lock] = {}
        self._hits = 0
        self._misses = 0
        self._expired = 0
        logger.info(f"TranslationCache initialized (capacity: {capacity}, ttl: {ttl}s)")

    @staticmethod
    def make_key(text: str, source_lang: str, target_lang: str) -> CacheKey:
        return (source_lang, target_lang, text)

    # --- lock management (bounded) ---

    def _get_lock(self, key: CacheKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            # Prune idle locks for keys that are no longer cached
            if len(self._locks) >= max(self.capacity, 1) * 2:
                for k in list(self._locks):
                    if k not in self._cache and not self._locks[k].locked():
                        del self._locks[k]
            lock = self._locks[key] = asyncio.Lock()
        return lock

    # --- primary operations ---

    def get(self, text: str, source_lang: str, target_lang: str) -> str | None:
        """Return the cached translation, or ``None`` if absent or expired."""
        if self.capacity == 0:
            return None
        key = self.make_key(text, source_lang, target_lang)
        value = self._cache.get(key)
        if value is None:
            self._misses += 1
            return None
        self._hits += 1
        logger.debug(f"Cache hit: {source_lang}|{target_lang}|{text}")
        return value

    def put(self, text: str, source_lang: str, target_lang: str, translated: str) -> None:
        """Insert or overwrite an entry, evicting the LRU entry past capacity."""
        if self.capacity == 0:
            return
        key = self.make_key(text, source_lang, target_lang)
        # Overwriting resets the entry's timestamp and recency
        self._cache[key] = translated

    async def get_or_fill(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        producer: Callable[[], Awaitable[str]],
    ) -> tuple[str, bool]:
        """Return ``(translation, was_cached)``, calling ``producer`` on a miss.

        Concurrent misses for the same key wait on one lock, so only the first
        caller reaches ``producer``. Exceptions from ``producer`` propagate and
        nothing is cached.
        """
        # 1. Fast path
        cached = self.get(text, source_lang, target_lang)
        if cached is not None:
            return cached, True

        # 2. Slow path with lock (double-checked locking)
        key = self.make_key(text, source_lang, target_lang)
        async with self._get_lock(key):
            cached = self._cache.get(key) if self.capacity else None
            if cached is not None:
                self._hits += 1
                return cached, True

            result = await producer()
            if result:
                self.put(text, source_lang, target_lang, result)
            return result, False

    def sweep_expired(self) -> int:
        """Physically remove expired entries. Returns how many were removed."""
        removed = len(self._cache.expire())
        self._expired += removed
        if removed:
            logger.debug(f"Cleaned {removed} expired cache entries")
        self.log_stats()
        return removed

    # --- statistics ---

    @property
    def size(self) -> int:
        return self._cache.currsize

    def stats(self) -> dict[str, Any]:
        lookups = self._hits + self._misses
        return {
            "size": self._cache.currsize,
            "capacity": self.capacity,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._cache.evictions,
            "expired": self._expired,
            "hit_rate": round(self._hits / lookups * 100, 2) if lookups else 0.0,
        }

    def log_stats(self) -> None:
        s = self.stats()
        logger.debug(
            f"Cache Stats - Size: {s['size']}/{s['capacity']}, Hit Rate: {s['hit_rate']}%, "
            f"Hits: {s['hits']}, Misses: {s['misses']}, "
            f"Evictions: {s['evictions']}, Expired: {s['expired']}"
        )

    def __len__(self) -> int:
        return self._cache.currsize

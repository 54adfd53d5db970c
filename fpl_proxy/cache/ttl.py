"""
Bounded, time-expiring response cache for the FPL proxy.

Stores resolved payloads keyed by resource key.  Entries expire once
their age exceeds the TTL and the least recently used entry is evicted
when the entry bound is exceeded.  Failures are never cached.  Tracks
hit/miss/eviction statistics.
"""

import asyncio
import copy
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

from fpl_proxy.config import get_settings
from fpl_proxy.upstream.models import Resolution, Tier

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CacheEntry(BaseModel):
    """A single cached payload.

    Attributes:
        cache_key: Resource key the payload was stored under.
        payload: The JSON payload.
        source: Tier that originally produced the payload.
        stored_at: Clock reading when the entry was stored.
        access_count: Number of times this entry has been served.
    """

    cache_key: str
    payload: Any
    source: Tier
    stored_at: float
    access_count: int = 0


class CacheStats(BaseModel):
    """Aggregate cache statistics.

    Attributes:
        hits: Total cache hit count.
        misses: Total cache miss count.
        hit_rate: Ratio of hits to total lookups (0.0 if no lookups).
        entry_count: Current number of entries in the cache.
        max_entries: Configured entry bound.
        evictions: Entries dropped to stay within the bound.
        ttl_seconds: Configured time-to-live.
    """

    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    entry_count: int = 0
    max_entries: int = 0
    evictions: int = 0
    ttl_seconds: float = 0.0


class ResponseCache:
    """In-memory LRU cache with TTL expiration.

    All bookkeeping happens under a lock that is never held while the
    compute function runs, so two concurrent misses on the same key may
    both compute.  Payloads are deep-copied in and out so callers never
    share state with a stored entry.

    Args:
        ttl_seconds: Time-to-live for entries.  Defaults to the
            configured ``cache.ttl_seconds`` (600).
        max_entries: Entry bound.  Defaults to ``cache.max_entries``.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        if ttl_seconds is None or max_entries is None:
            defaults = get_settings().cache
            if ttl_seconds is None:
                ttl_seconds = defaults.ttl_seconds
            if max_entries is None:
                max_entries = defaults.max_entries
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        if self._ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if self._max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._clock = clock
        self._store: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits: int = 0
        self._misses: int = 0
        self._evictions: int = 0

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at > self._ttl_seconds

    def get(self, key: str) -> Optional[Resolution]:
        """Look up a cached payload.

        An expired entry is dropped and counted as a miss.  A hit marks
        the entry as most recently used.

        Args:
            key: Resource key.

        Returns:
            A :class:`Resolution` with ``from_cache=True``, or ``None``.
        """
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                logger.debug("Cache miss", extra={"cache_key": key})
                return None

            if self._is_expired(entry, self._clock()):
                del self._store[key]
                self._misses += 1
                logger.debug("Cache entry expired", extra={"cache_key": key})
                return None

            self._store.move_to_end(key)
            entry.access_count += 1
            self._hits += 1
            payload = copy.deepcopy(entry.payload)
            source = entry.source

        logger.debug("Cache hit", extra={"cache_key": key})
        return Resolution(payload=payload, source=source, from_cache=True)

    def set(self, key: str, resolution: Resolution) -> CacheEntry:
        """Store a resolved payload, evicting the LRU entry if full.

        Args:
            key: Resource key (must not be empty).
            resolution: The successful resolution to store.

        Returns:
            The newly created CacheEntry.

        Raises:
            ValueError: If the key is empty.
        """
        if not key or not key.strip():
            raise ValueError("Cache key must not be empty")

        entry = CacheEntry(
            cache_key=key,
            payload=copy.deepcopy(resolution.payload),
            source=resolution.source,
            stored_at=self._clock(),
        )
        with self._lock:
            self._store[key] = entry
            self._store.move_to_end(key)
            while len(self._store) > self._max_entries:
                evicted_key, _ = self._store.popitem(last=False)
                self._evictions += 1
                logger.debug("Cache entry evicted", extra={"cache_key": evicted_key})
        logger.debug("Cache set", extra={"cache_key": key, "source": entry.source.value})
        return entry

    async def get_or_compute(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[Resolution]],
    ) -> Resolution:
        """Return the cached payload for *key*, computing it on a miss.

        Args:
            key: Resource key.
            compute_fn: Zero-argument coroutine function producing a
                fresh resolution (normally the tiered resolver).

        Returns:
            The cached or freshly computed resolution.

        Raises:
            Exception: Whatever ``compute_fn`` raises; nothing is stored
                in that case.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        resolution = await compute_fn()
        self.set(key, resolution)
        return resolution.model_copy(update={"payload": copy.deepcopy(resolution.payload)})

    def cleanup_expired(self) -> int:
        """Remove all expired entries from the cache.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired_keys = [
                key
                for key, entry in self._store.items()
                if self._is_expired(entry, now)
            ]
            for key in expired_keys:
                del self._store[key]

        if expired_keys:
            logger.info(
                "Expired entries cleaned up",
                extra={"count": len(expired_keys)},
            )
        return len(expired_keys)

    def stats(self) -> CacheStats:
        """Return aggregate cache statistics.

        Returns:
            CacheStats with current counts and derived metrics.
        """
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / total if total > 0 else 0.0,
                entry_count=len(self._store),
                max_entries=self._max_entries,
                evictions=self._evictions,
                ttl_seconds=self._ttl_seconds,
            )

    @property
    def size(self) -> int:
        """Current number of entries in the cache."""
        return len(self._store)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def max_entries(self) -> int:
        return self._max_entries


async def purge_expired_periodically(cache: ResponseCache, interval_seconds: float) -> None:
    """Continuously drop expired entries on a fixed interval."""
    while True:
        await asyncio.sleep(interval_seconds)
        cache.cleanup_expired()

"""In-memory LRU cache with per-entry TTL.

Backs the rate limiter's per-client counters: bounded in size, thread-safe,
and driven by an injectable millisecond clock so expiry is testable without
sleeping.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def monotonic_ms() -> int:
    """Return a monotonic timestamp in milliseconds."""
    return time.monotonic_ns() // 1_000_000


@dataclass
class CacheItem(Generic[V]):
    """Container for cached values with expiration metadata."""

    value: V
    expires_at: int


class LRUTTLCache(Generic[K, V]):
    """Thread-safe, in-memory cache with LRU eviction and TTL expiry.

    Reads mark an entry as recently used but do not extend its lifetime;
    the TTL always counts from the last ``set``.

    Attributes:
        ttl_ms: Time-to-live applied to all entries, in milliseconds.
        max_entries: Maximum number of cached items.
    """

    def __init__(
        self,
        *,
        ttl_ms: int,
        max_entries: int = 500,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        if ttl_ms < 1:
            raise ValueError("ttl_ms must be >= 1")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._ttl = ttl_ms
        self._max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[K, CacheItem[V]] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"LRUTTLCache(ttl_ms={self._ttl}, max_entries={self._max_entries}, "
            f"size={len(self._store)}, hits={self._hits}, misses={self._misses}, "
            f"evictions={self._evictions})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            item = self._store.get(key)  # type: ignore[arg-type]
            return item is not None and not self._is_expired(item)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: K) -> V | None:
        """Retrieve a cached value if it exists and is not expired.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """

        with self._lock:
            item = self._store.get(key)
            if item is None:
                self._misses += 1
                return None

            if self._is_expired(item):
                self._evict_single(key)
                self._misses += 1
                logger.debug("cache.expired", extra={"size": len(self._store)})
                return None

            self._hits += 1
            self._store.move_to_end(key)
            return item.value

    def set(self, key: K, value: V) -> None:
        """Store a value with TTL, evicting least recently used entries as needed.

        Args:
            key: Cache key.
            value: Value to store.
        """

        with self._lock:
            self._store[key] = CacheItem(value=value, expires_at=self._clock() + self._ttl)
            self._store.move_to_end(key)
            self._evict_if_over_capacity_locked()

    def delete(self, key: K) -> bool:
        """Remove a key; returns whether it was present."""

        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> dict[str, int]:
        """Return lightweight cache metrics without exposing keys or values."""

        with self._lock:
            return {
                "ttl_ms": self._ttl,
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict_single(self, key: K) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1

    def _evict_if_over_capacity_locked(self) -> None:
        while len(self._store) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            self._store.popitem(last=False)
            self._evictions += 1
            logger.debug("cache.evicted_lru", extra={"size": len(self._store)})

    def _is_expired(self, item: CacheItem[V]) -> bool:
        return self._clock() >= item.expires_at

"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Memory is bounded: counters live in an LRU cache whose entries expire one
  window after their last write.
- Thread-safe: the read-modify-write of a counter runs under a lock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import (
    ALLOWED_MESSAGE,
    THROTTLED_MESSAGE,
    AbstractRateLimiter,
    RateLimitResult,
)
from app.utils.simple_cache import LRUTTLCache, monotonic_ms

DEFAULT_LIMIT = 5
DEFAULT_WINDOW_MS = 60 * 1000
DEFAULT_MAX_ENTRIES = 500


@dataclass
class WindowCounter:
    """Requests seen for one client since ``window_start`` (ms)."""

    count: int
    window_start: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed window that starts at a client's first request.

    Each client gets ``limit`` requests per ``window_ms``. The window opens on
    the first request and rolls over on the first request made at or after
    ``window_start + window_ms``.

    Important:
        This limiter is per-process only. If the API runs with multiple
        workers, each worker enforces its own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int = DEFAULT_LIMIT,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of requests allowed per window.
            window_ms: Window duration in milliseconds.
            max_entries: Maximum number of clients tracked at once.
            clock: Time source returning milliseconds; must not go backwards.

        Raises:
            ValueError: If limit, window_ms or max_entries are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        self._limit = limit
        self._window_ms = window_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._counters: LRUTTLCache[str, WindowCounter] = LRUTTLCache(
            ttl_ms=window_ms,
            max_entries=max_entries,
            clock=clock,
        )

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def __len__(self) -> int:
        return len(self._counters)

    def peek(self, key: str) -> WindowCounter | None:
        """Return a copy of the live counter for ``key`` without recording a request.

        Inspection helper for tests and admin tooling; request handling only
        goes through ``hit``/``check``.
        """
        with self._lock:
            counter = self._counters.get(key)
            if counter is None:
                return None
            return WindowCounter(count=counter.count, window_start=counter.window_start)

    def reset(self, key: str | None = None) -> None:
        """Forget one client's counter, or every counter when ``key`` is None.

        Admin/test helper, e.g. to unblock a client by hand.
        """
        with self._lock:
            if key is None:
                self._counters.clear()
            else:
                self._counters.delete(key)

    def hit(self, key: str) -> RateLimitResult:
        """Record one request for ``key`` and decide whether it may proceed.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            now = self._clock()
            counter = self._counters.get(key)

            if counter is None or now - counter.window_start >= self._window_ms:
                counter = WindowCounter(count=1, window_start=now)
                self._counters.set(key, counter)
                return self._build_result(counter, allowed=True, now=now)

            counter.count += 1
            self._counters.set(key, counter)

            return self._build_result(counter, allowed=counter.count <= self._limit, now=now)

    def _build_result(self, counter: WindowCounter, *, allowed: bool, now: int) -> RateLimitResult:
        reset_at = counter.window_start + self._window_ms
        remaining = max(0, self._limit - counter.count)
        if allowed:
            return RateLimitResult(
                success=True,
                message=ALLOWED_MESSAGE,
                limit=self._limit,
                remaining=remaining,
                reset_at_ms=reset_at,
            )

        retry_after = min(self._window_ms, max(0, reset_at - now))
        return RateLimitResult(
            success=False,
            message=THROTTLED_MESSAGE,
            retry_after=retry_after,
            limit=self._limit,
            remaining=0,
            reset_at_ms=reset_at,
        )


def create_rate_limiter(
    limit: int = DEFAULT_LIMIT,
    window_ms: int = DEFAULT_WINDOW_MS,
    *,
    max_entries: int = DEFAULT_MAX_ENTRIES,
    clock: Callable[[], int] = monotonic_ms,
) -> InMemoryFixedWindowRateLimiter:
    """Build an independently configured limiter with its own counter cache.

    Example:
        >>> login = create_rate_limiter(5, 5 * 60 * 1000)
        >>> signup = create_rate_limiter(3, 10 * 60 * 1000)
        >>> login.hit("1.2.3.4").success and signup.hit("1.2.3.4").success
        True
    """
    return InMemoryFixedWindowRateLimiter(
        limit=limit,
        window_ms=window_ms,
        max_entries=max_entries,
        clock=clock,
    )

"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the storage backend can change with minimal impact.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.core.client_identity import HeaderSource, client_key

ALLOWED_MESSAGE = "Request allowed"
THROTTLED_MESSAGE = "Too many requests. Please try again later."


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        success: Whether the request is allowed to proceed.
        message: Human-readable decision message.
        retry_after: Milliseconds until the window rolls over (only when denied).
        limit: Max requests per window.
        remaining: Requests left in the current window (0 when denied).
        reset_at_ms: Limiter clock timestamp (ms) when the current window ends.
    """

    success: bool
    message: str
    retry_after: int | None = None
    limit: int = 0
    remaining: int = 0
    reset_at_ms: int = 0


class AbstractRateLimiter(ABC):
    """Interface for per-client rate limiters."""

    @abstractmethod
    def hit(self, key: str) -> RateLimitResult:
        """Record one request for an already derived client key.

        Args:
            key: Client identity (e.g., an IP address).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    def check(self, request: HeaderSource) -> RateLimitResult:
        """Derive the client key from request headers and record one request.

        Args:
            request: Any object exposing ``headers.get(name)``.

        Returns:
            RateLimitResult for the derived client.
        """
        return self.hit(client_key(request))

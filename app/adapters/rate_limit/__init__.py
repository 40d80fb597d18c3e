"""Rate limiting adapters.

This package keeps the limiter behind a small abstraction so the in-memory
implementation can be replaced by a shared store without changing the
HTTP layer.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import (
    InMemoryFixedWindowRateLimiter,
    WindowCounter,
    create_rate_limiter,
)

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
    "WindowCounter",
    "create_rate_limiter",
]

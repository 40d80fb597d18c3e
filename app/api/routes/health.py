from __future__ import annotations

from fastapi import APIRouter, Request

from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check.

    Also reports how many clients each in-memory limiter currently tracks,
    which is useful when tuning ``APP_RATE_LIMIT_MAX_ENTRIES``.
    """

    limiters = getattr(request.app.state, "rate_limiters", {})
    return {
        "status": "ok",
        "rate_limiters": {
            name: {
                "limit": limiter.limit,
                "window_ms": limiter.window_ms,
                "tracked_clients": len(limiter),
            }
            for name, limiter in limiters.items()
            if isinstance(limiter, InMemoryFixedWindowRateLimiter)
        },
    }

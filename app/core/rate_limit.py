"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

- Limiters are built once per application by ``build_rate_limiters`` and
  stored on ``app.state.rate_limiters``; there are no module-level
  singletons, so each app (and each test) gets fresh state.
- Routes depend on ``RateLimitGuard("<name>")`` only.
- A denied request raises ``ThrottledAppError``; the global exception handler
  turns it into HTTP 429.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import create_rate_limiter
from app.core.client_identity import client_key, hash_client_key
from app.core.config import AppSettings, settings
from app.core.errors import ThrottledAppError

logger = logging.getLogger(__name__)

LOGIN_LIMITER = "login"
SIGNUP_LIMITER = "signup"


def build_rate_limiters(app_settings: AppSettings | None = None) -> dict[str, AbstractRateLimiter]:
    """Create the independently configured limiters used by the auth routes.

    Args:
        app_settings: Optional settings; defaults to the global settings.

    Returns:
        Mapping of limiter name to limiter instance.
    """

    cfg = app_settings or settings.app
    return {
        LOGIN_LIMITER: create_rate_limiter(
            cfg.login_rate_limit_requests,
            cfg.login_rate_limit_window_ms,
            max_entries=cfg.rate_limit_max_entries,
        ),
        SIGNUP_LIMITER: create_rate_limiter(
            cfg.signup_rate_limit_requests,
            cfg.signup_rate_limit_window_ms,
            max_entries=cfg.rate_limit_max_entries,
        ),
    }


def install_rate_limiters(app: FastAPI, limiters: dict[str, AbstractRateLimiter] | None = None) -> None:
    """Attach limiters to ``app.state`` so request handlers can resolve them."""

    app.state.rate_limiters = limiters if limiters is not None else build_rate_limiters()


def get_rate_limiter(request: Request, name: str) -> AbstractRateLimiter:
    """Resolve a named limiter from the application state.

    Raises:
        KeyError: If no limiter with that name was installed.
    """

    limiters: dict[str, AbstractRateLimiter] = getattr(request.app.state, "rate_limiters", {})
    return limiters[name]


class RateLimitGuard:
    """FastAPI dependency enforcing one named per-client limiter.

    Usage:
        @router.post("/login", dependencies=[Depends(RateLimitGuard("login"))])
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def __call__(self, request: Request) -> None:
        """Record the request against the limiter; raise when it is denied.

        Raises:
            ThrottledAppError: When the client exceeded its quota.
        """

        if not settings.app.rate_limit_enabled:
            return

        limiter = get_rate_limiter(request, self.name)
        key = client_key(request)
        result = limiter.hit(key)

        log_extra = {
            "limiter": self.name,
            "client_hash": hash_client_key(key),
            "limit": result.limit,
            "remaining": result.remaining,
        }

        if result.success:
            logger.debug("rate_limit.allowed", extra=log_extra)
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={**log_extra, "retry_after_ms": result.retry_after},
        )
        raise ThrottledAppError(
            code="rate_limited",
            message=result.message,
            result=result,
        )

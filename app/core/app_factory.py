"""Application factory for the FastAPI app.

Builds a fresh app per call: limiter state and the user store live on
``app.state``, so tests can create isolated apps.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.users.base import AbstractUserRepository
from app.adapters.users.in_memory import InMemoryUserRepository
from app.api.routes import auth_router, health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_context_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import install_rate_limiters
from app.services.auth_service import AuthService


def create_app(
    *,
    users: AbstractUserRepository | None = None,
    rate_limiters: dict[str, AbstractRateLimiter] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        users: User store; defaults to a new in-memory repository.
        rate_limiters: Named limiters; defaults to ones built from settings.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Signal Desk Auth API",
        description=(
            "Login and signup endpoints for the trading-signal site. Each "
            "endpoint is protected by an in-memory, per-client fixed-window "
            "rate limiter and answers 429 with Retry-After when exceeded."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.state.auth_service = AuthService(users or InMemoryUserRepository())
    install_rate_limiters(app, rate_limiters)

    app.middleware("http")(request_context_middleware)
    setup_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app

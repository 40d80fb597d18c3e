"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import of ``app`` so the global
settings object is built with test values.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from app.adapters.rate_limit.in_memory import create_rate_limiter
from app.core.app_factory import create_app
from app.core.rate_limit import LOGIN_LIMITER, SIGNUP_LIMITER


class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=1_000_000)


@pytest.fixture
def limiters(clock: FakeClock) -> dict:
    """Login 5 per 5 minutes, signup 3 per 10 minutes, on the fake clock."""
    return {
        LOGIN_LIMITER: create_rate_limiter(5, 5 * 60 * 1000, clock=clock),
        SIGNUP_LIMITER: create_rate_limiter(3, 10 * 60 * 1000, clock=clock),
    }


@pytest.fixture
def client(limiters: dict) -> TestClient:
    """Test client over a fresh app with fake-clock limiters."""
    return TestClient(create_app(rate_limiters=limiters))

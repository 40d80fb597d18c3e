"""Unit tests for the in-memory fixed-window rate limiter."""

import threading
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.base import ALLOWED_MESSAGE, THROTTLED_MESSAGE
from app.adapters.rate_limit.in_memory import (
    InMemoryFixedWindowRateLimiter,
    create_rate_limiter,
)


class _Req:
    def __init__(self, **headers: str) -> None:
        self.headers = {k.replace("_", "-"): v for k, v in headers.items()}


def test_factory_defaults() -> None:
    limiter = create_rate_limiter()
    assert limiter.limit == 5
    assert limiter.window_ms == 60_000


def test_allows_up_to_limit_in_same_window() -> None:
    clock = Mock(return_value=0)
    limiter = create_rate_limiter(3, 1000, clock=clock)

    for _ in range(3):
        result = limiter.hit("k")
        assert result.success is True
        assert result.message == ALLOWED_MESSAGE
        assert result.retry_after is None

    assert limiter.peek("k").count == 3


def test_concrete_window_scenario() -> None:
    clock = Mock(return_value=0)
    limiter = create_rate_limiter(3, 1000, clock=clock)

    for t in (0, 100, 200):
        clock.return_value = t
        assert limiter.hit("K").success is True

    clock.return_value = 300
    denied = limiter.hit("K")
    assert denied.success is False
    assert denied.message == THROTTLED_MESSAGE
    assert denied.retry_after == 700

    clock.return_value = 1001
    assert limiter.hit("K").success is True
    assert limiter.peek("K").count == 1
    assert limiter.peek("K").window_start == 1001


def test_every_request_past_limit_is_denied_until_rollover() -> None:
    clock = Mock(return_value=0)
    limiter = create_rate_limiter(2, 1000, clock=clock)
    limiter.hit("k")
    limiter.hit("k")

    for t in (10, 500, 999):
        clock.return_value = t
        result = limiter.hit("k")
        assert result.success is False
        assert 0 <= result.retry_after <= 1000
        assert result.retry_after == 1000 - t
        assert result.remaining == 0


def test_window_rolls_over_exactly_at_boundary() -> None:
    clock = Mock(return_value=0)
    limiter = create_rate_limiter(1, 1000, clock=clock)

    assert limiter.hit("k").success is True
    clock.return_value = 999
    assert limiter.hit("k").success is False
    clock.return_value = 1000
    assert limiter.hit("k").success is True


def test_reset_after_many_denials() -> None:
    clock = Mock(return_value=0)
    limiter = create_rate_limiter(1, 1000, clock=clock)
    for _ in range(20):
        limiter.hit("k")

    clock.return_value = 5000
    assert limiter.hit("k").success is True
    assert limiter.peek("k").count == 1


def test_isolated_by_key() -> None:
    clock = Mock(return_value=0)
    limiter = create_rate_limiter(1, 60_000, clock=clock)

    assert limiter.hit("k1").success is True
    assert limiter.hit("k1").success is False
    assert limiter.hit("k2").success is True


def test_instances_do_not_share_state() -> None:
    clock = Mock(return_value=0)
    login = create_rate_limiter(5, 5 * 60 * 1000, clock=clock)
    signup = create_rate_limiter(3, 10 * 60 * 1000, clock=clock)

    for _ in range(3):
        signup.hit("1.2.3.4")
    assert signup.hit("1.2.3.4").success is False

    assert login.hit("1.2.3.4").success is True
    assert login.peek("1.2.3.4").count == 1


def test_lru_eviction_forgets_least_recently_touched_key() -> None:
    clock = Mock(return_value=0)
    limiter = create_rate_limiter(1, 60_000, max_entries=2, clock=clock)

    limiter.hit("a")
    limiter.hit("b")
    assert limiter.hit("a").success is False  # touches "a"; "b" is now oldest

    limiter.hit("c")

    assert len(limiter) == 2
    assert limiter.peek("b") is None
    result = limiter.hit("b")
    assert result.success is True
    assert limiter.peek("b").count == 1


def test_cache_never_exceeds_max_entries() -> None:
    limiter = create_rate_limiter(5, 60_000, max_entries=10, clock=Mock(return_value=0))
    for i in range(50):
        limiter.hit(f"10.0.0.{i}")
    assert len(limiter) == 10


def test_result_metadata() -> None:
    clock = Mock(return_value=100)
    limiter = create_rate_limiter(3, 1000, clock=clock)

    first = limiter.hit("k")
    assert first.limit == 3
    assert first.remaining == 2
    assert first.reset_at_ms == 1100


def test_check_derives_key_from_headers() -> None:
    limiter = create_rate_limiter(1, 60_000, clock=Mock(return_value=0))

    assert limiter.check(_Req(x_forwarded_for="1.2.3.4, 5.6.7.8")).success is True
    assert limiter.peek("1.2.3.4").count == 1
    assert limiter.check(_Req(x_real_ip="1.2.3.4")).success is False


def test_unidentified_clients_share_loopback_quota() -> None:
    limiter = create_rate_limiter(2, 60_000, clock=Mock(return_value=0))

    assert limiter.check(_Req()).success is True
    assert limiter.check(_Req()).success is True
    assert limiter.check(_Req()).success is False
    assert limiter.peek("127.0.0.1").count == 3


def test_reset_forgets_counters() -> None:
    limiter = create_rate_limiter(1, 60_000, clock=Mock(return_value=0))
    limiter.hit("a")
    limiter.hit("b")

    limiter.reset("a")
    assert limiter.peek("a") is None
    assert limiter.peek("b") is not None

    limiter.reset()
    assert len(limiter) == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_ms": 60},
        {"limit": 1, "window_ms": 0},
        {"limit": 1, "window_ms": 60, "max_entries": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryFixedWindowRateLimiter(**kwargs)


def test_empty_key_rejected() -> None:
    limiter = create_rate_limiter()

    with pytest.raises(ValueError):
        limiter.hit("")


def test_concurrent_hits_on_one_key_are_all_counted() -> None:
    limit = 100
    threads_count, hits_per_thread = 8, 500
    limiter = create_rate_limiter(limit, 60_000, clock=Mock(return_value=0))
    allowed: list[bool] = []
    allowed_lock = threading.Lock()
    start = threading.Barrier(threads_count)

    def _worker() -> None:
        start.wait()
        local = [limiter.hit("k").success for _ in range(hits_per_thread)]
        with allowed_lock:
            allowed.extend(local)

    threads = [threading.Thread(target=_worker) for _ in range(threads_count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert limiter.peek("k").count == threads_count * hits_per_thread
    assert allowed.count(True) == limit

"""Client identity derivation for per-client rate limiting.

The client key is the first address in ``X-Forwarded-For``, falling back to
``X-Real-IP`` and finally to a loopback sentinel. Unidentifiable clients
therefore share one anonymous quota instead of being rejected.
"""

from __future__ import annotations

import hashlib
from typing import Any, Protocol

FORWARDED_FOR_HEADER = "x-forwarded-for"
REAL_IP_HEADER = "x-real-ip"
LOOPBACK_SENTINEL = "127.0.0.1"


class _Headers(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...


class HeaderSource(Protocol):
    """Anything with a case-insensitive ``headers.get`` (e.g. a Starlette Request)."""

    @property
    def headers(self) -> _Headers: ...


def _first_address(value: str | None) -> str | None:
    if not value:
        return None
    first = value.split(",", 1)[0].strip()
    return first or None


def client_key(request: HeaderSource) -> str:
    """Derive the rate limiting key for a request.

    Args:
        request: Object exposing request headers.

    Returns:
        Client address string, or ``"127.0.0.1"`` when no header identifies it.

    Examples:
        >>> class R:
        ...     headers = {"x-forwarded-for": "1.2.3.4, 5.6.7.8"}
        >>> client_key(R())
        '1.2.3.4'
    """

    headers = request.headers
    return (
        _first_address(headers.get(FORWARDED_FOR_HEADER))
        or _first_address(headers.get(REAL_IP_HEADER))
        or LOOPBACK_SENTINEL
    )


def hash_client_key(key: str) -> str:
    """Hash a client key for logging without exposing the address."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]

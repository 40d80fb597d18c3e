"""OpenAPI customization.

Enriches the generated schema with tags metadata and documents the 429
response (body shape and ``Retry-After``/``X-RateLimit-*`` headers) on every
rate limited operation.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Auth",
        "description": "Login and signup, rate limited per client address.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]

_THROTTLED_SCHEMA = {
    "type": "object",
    "properties": {
        "error": {
            "type": "object",
            "properties": {
                "code": {"type": "string", "example": "rate_limited"},
                "message": {"type": "string"},
                "retryAfter": {
                    "type": "integer",
                    "description": "Milliseconds until the client may retry.",
                },
                "request_id": {"type": "string"},
            },
        }
    },
}

_THROTTLED_HEADERS = {
    "Retry-After": {
        "description": "Seconds until the window rolls over.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Limit": {"schema": {"type": "integer"}},
    "X-RateLimit-Remaining": {"schema": {"type": "integer"}},
    "X-RateLimit-Reset": {
        "description": "UNIX epoch seconds when the window resets.",
        "schema": {"type": "integer"},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with tags and 429 documentation."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("schemas", {}).setdefault("RateLimitExceeded", _THROTTLED_SCHEMA)

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(t for t in _TAGS if t["name"] not in existing_tag_names)

        for methods in schema.get("paths", {}).values():
            for operation in methods.values():
                if not isinstance(operation, dict):
                    continue
                throttled = operation.get("responses", {}).get("429")
                if throttled is None:
                    continue
                throttled["headers"] = _THROTTLED_HEADERS
                throttled["content"] = {
                    "application/json": {
                        "schema": {"$ref": "#/components/schemas/RateLimitExceeded"}
                    }
                }

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]

"""Login and signup endpoints, each behind its own per-client rate limiter."""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ValidationError

from app.core.errors import ValidationAppError
from app.core.rate_limit import LOGIN_LIMITER, SIGNUP_LIMITER, RateLimitGuard
from app.schemas.auth import LoginRequest, LoginResponse, SignupRequest, SignupResponse
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user-auth", tags=["Auth"])

ModelT = TypeVar("ModelT", bound=BaseModel)

_THROTTLED_RESPONSE: dict[int | str, dict[str, Any]] = {
    429: {"description": "Too many requests from this client; see Retry-After."},
}


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Group pydantic errors by wire field name."""

    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        name = ".".join(str(part) for part in err["loc"]) or "body"
        ctx_error = err.get("ctx", {}).get("error")
        if err["type"] == "missing":
            message = "Required"
        elif err["type"] == "value_error" and ctx_error:
            message = str(ctx_error)
        else:
            message = err["msg"]
        fields.setdefault(name, []).append(message)
    return fields


async def _parse_body(request: Request, model: type[ModelT]) -> ModelT:
    """Read the JSON body and validate it against ``model``.

    Raises:
        ValidationAppError: On malformed JSON or invalid fields.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Invalid JSON in request body.",
        ) from exc

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        fields = _field_errors(exc)
        logger.info("auth.validation_failed", extra={"fields": sorted(fields)})
        raise ValidationAppError(
            code="invalid_input",
            message="Invalid input.",
            details={"fields": fields},
        ) from exc


@router.post(
    "/login",
    response_model=LoginResponse,
    responses=_THROTTLED_RESPONSE,
    dependencies=[Depends(RateLimitGuard(LOGIN_LIMITER))],
)
async def login(
    request: Request,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Log in with a registered mobile number."""
    body = await _parse_body(request, LoginRequest)
    user = service.login(body.mobile_number)
    return LoginResponse(
        message="Login successful!",
        user_id=user.id,
        full_name=user.full_name,
        mobile_number=user.mobile_number,
    )


@router.post(
    "/signup",
    response_model=SignupResponse,
    responses=_THROTTLED_RESPONSE,
    dependencies=[Depends(RateLimitGuard(SIGNUP_LIMITER))],
)
async def signup(
    request: Request,
    service: AuthService = Depends(get_auth_service),
) -> SignupResponse:
    """Register a new account for a mobile number."""
    body = await _parse_body(request, SignupRequest)
    user = service.signup(body.full_name, body.mobile_number)
    return SignupResponse(message="Signup successful!", user_id=user.id)

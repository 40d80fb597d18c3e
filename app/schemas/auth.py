"""Pydantic schemas for the login and signup endpoints.

Wire names are camelCase (``mobileNumber``, ``fullName``, ``userId``);
Python attributes stay snake_case.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_MOBILE_NUMBER_RE = re.compile(r"[0-9]{10}")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(_CamelModel):
    """Login payload."""

    mobile_number: str = Field(..., description="10-digit mobile number.")

    @field_validator("mobile_number")
    @classmethod
    def _check_mobile_number(cls, value: str) -> str:
        if not _MOBILE_NUMBER_RE.fullmatch(value):
            raise ValueError("Mobile number must be a 10-digit number.")
        return value


class SignupRequest(LoginRequest):
    """Signup payload."""

    full_name: str = Field(..., description="Display name, at least 2 characters.")

    @field_validator("full_name")
    @classmethod
    def _check_full_name(cls, value: str) -> str:
        if len(value) < 2:
            raise ValueError("Full name must be at least 2 characters long.")
        return value


class LoginResponse(_CamelModel):
    message: str
    user_id: str
    full_name: str
    mobile_number: str


class SignupResponse(_CamelModel):
    message: str
    user_id: str

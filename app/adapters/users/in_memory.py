"""In-memory user repository.

Process-local and lost on restart; suitable for a single worker and tests.
"""

from __future__ import annotations

import threading
import uuid

from app.adapters.users.base import AbstractUserRepository, User
from app.core.errors import ConflictAppError


class InMemoryUserRepository(AbstractUserRepository):
    """Dict-backed user store keyed by mobile number."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_mobile: dict[str, User] = {}

    def __len__(self) -> int:
        return len(self._by_mobile)

    def get_by_mobile_number(self, mobile_number: str) -> User | None:
        with self._lock:
            return self._by_mobile.get(mobile_number)

    def create(self, *, full_name: str, mobile_number: str, is_verified: bool = False) -> User:
        with self._lock:
            if mobile_number in self._by_mobile:
                raise ConflictAppError(
                    code="user_exists",
                    message="Account with this mobile number already exists.",
                )
            user = User(
                id=str(uuid.uuid4()),
                full_name=full_name,
                mobile_number=mobile_number,
                is_verified=is_verified,
            )
            self._by_mobile[mobile_number] = user
            return user

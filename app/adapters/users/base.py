"""User repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class User:
    """A registered site user, identified by a unique mobile number."""

    id: str
    full_name: str
    mobile_number: str
    is_verified: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AbstractUserRepository(ABC):
    """Interface for user storage."""

    @abstractmethod
    def get_by_mobile_number(self, mobile_number: str) -> User | None:
        """Return the user registered with ``mobile_number``, if any."""
        raise NotImplementedError

    @abstractmethod
    def create(self, *, full_name: str, mobile_number: str, is_verified: bool = False) -> User:
        """Persist a new user.

        Raises:
            ConflictAppError: If the mobile number is already registered.
        """
        raise NotImplementedError

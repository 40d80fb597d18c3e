"""Login and signup use cases."""

from __future__ import annotations

import logging

from app.adapters.users.base import AbstractUserRepository, User
from app.core.errors import NotFoundAppError

logger = logging.getLogger(__name__)


class AuthService:
    """Looks up and registers users by mobile number."""

    def __init__(self, users: AbstractUserRepository) -> None:
        self._users = users

    def login(self, mobile_number: str) -> User:
        """Return the user for ``mobile_number``.

        Raises:
            NotFoundAppError: If no account uses this number.
        """
        user = self._users.get_by_mobile_number(mobile_number)
        if user is None:
            logger.info("auth.login.unknown_user")
            raise NotFoundAppError(
                code="user_not_found",
                message="No account found with this mobile number. Please sign up.",
            )

        logger.info("auth.login.succeeded", extra={"user_id": user.id})
        return user

    def signup(self, full_name: str, mobile_number: str) -> User:
        """Register a new, already verified user.

        Raises:
            ConflictAppError: If the number is already registered.
        """
        user = self._users.create(
            full_name=full_name,
            mobile_number=mobile_number,
            is_verified=True,
        )
        logger.info("auth.signup.succeeded", extra={"user_id": user.id})
        return user

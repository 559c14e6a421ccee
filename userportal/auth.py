"""Email/password authentication against the user store."""
from __future__ import annotations

import logging

from .errors import BadPassword, NoSuchUser
from .models import User
from .passwords import verify_password
from .store import UserStore

logger = logging.getLogger("userportal.auth")


class Authenticator:
    """Validate credentials against the accounts held in a :class:`UserStore`."""

    def __init__(self, store: UserStore) -> None:
        self._store = store

    def authenticate(self, email: str, password: str) -> User:
        user = self._store.find_by_email(email)
        if user is None:
            raise NoSuchUser("No user with that email")

        # AuthenticatorError from the hashing backend propagates unchanged.
        if not verify_password(password, user.password_hash):
            raise BadPassword("Password incorrect")

        logger.debug("Credentials accepted for user %s", user.id)
        return user


__all__ = ["Authenticator"]

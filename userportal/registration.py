"""Account registration."""
from __future__ import annotations

import logging
from datetime import datetime

from .errors import DuplicateUser, MissingField
from .models import User
from .passwords import DEFAULT_ROUNDS, hash_password
from .store import UserStore, generate_user_id

logger = logging.getLogger("userportal.registration")


def register_user(
    store: UserStore,
    name: str,
    email: str,
    password: str,
    *,
    now: datetime,
    rounds: int = DEFAULT_ROUNDS,
) -> User:
    """Validate, hash, and store a new account.

    Raises :class:`MissingField` when any field is blank,
    :class:`DuplicateUser` when the name or email is taken, and
    :class:`StorageError` when the store cannot be written.
    """

    name = (name or "").strip()
    email = (email or "").strip()
    if not name or not email or not password:
        raise MissingField()

    if store.find_by_email(email) is not None or store.find_by_name(name) is not None:
        raise DuplicateUser()

    user = User(
        id=generate_user_id(now, (existing.id for existing in store.all())),
        name=name,
        email=email,
        password_hash=hash_password(password, rounds=rounds),
        registered_at=now,
    )
    store.append(user)
    logger.info("Registered user %s (%s)", user.id, user.name)
    return user


__all__ = ["register_user"]

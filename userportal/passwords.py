"""Salted password hashing backed by passlib's bcrypt handler."""
from __future__ import annotations

import logging

from passlib.context import CryptContext

from .errors import AuthenticatorError

DEFAULT_ROUNDS = 10

logger = logging.getLogger("userportal.passwords")

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=DEFAULT_ROUNDS)

# passlib reports bad input and unknown hashes as ValueError subclasses and
# backend failures (MissingBackendError, InternalBackendError) as RuntimeError.
_BACKEND_ERRORS = (ValueError, TypeError, RuntimeError)


def hash_password(password: str, *, rounds: int = DEFAULT_ROUNDS) -> str:
    if not password:
        raise ValueError("Password must not be empty")
    context = _pwd_context
    if rounds != DEFAULT_ROUNDS:
        context = _pwd_context.copy(bcrypt__rounds=rounds)
    try:
        return context.hash(password)
    except _BACKEND_ERRORS as exc:
        logger.error("Password hashing failed: %s", exc)
        raise AuthenticatorError() from exc


def verify_password(password: str, hashed: str) -> bool:
    """Return whether ``password`` matches ``hashed``.

    A mismatch returns False. A hash the backend cannot process raises
    :class:`AuthenticatorError` so callers can tell it apart from a wrong
    password.
    """

    try:
        return _pwd_context.verify(password, hashed)
    except _BACKEND_ERRORS as exc:
        logger.error("Password verification failed: %s", exc)
        raise AuthenticatorError() from exc


__all__ = ["DEFAULT_ROUNDS", "hash_password", "verify_password"]

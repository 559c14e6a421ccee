"""Error types raised by the user portal."""
from __future__ import annotations

from fastapi import status


class PortalError(Exception):
    """Base class for failures that are reported back to the visitor."""

    message = "Something went wrong. Please try again."
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingField(PortalError):
    message = "Please provide name, email, and password"


class DuplicateUser(PortalError):
    message = "Name or email already registered"


class InvalidCredentials(PortalError):
    """Common parent so callers never have to tell the two cases apart."""

    message = "Invalid email or password."
    status_code = status.HTTP_401_UNAUTHORIZED


class NoSuchUser(InvalidCredentials):
    pass


class BadPassword(InvalidCredentials):
    pass


class AuthenticatorError(PortalError):
    """Raised when the password hashing backend fails, not on a mismatch."""

    message = "Unable to verify credentials right now."
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StorageError(PortalError):
    message = "Failed to register user"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class Unauthenticated(PortalError):
    message = "Please sign in to continue."
    status_code = status.HTTP_401_UNAUTHORIZED


class SessionExpired(Unauthenticated):
    message = "Session expired. Please login again."


__all__ = [
    "AuthenticatorError",
    "BadPassword",
    "DuplicateUser",
    "InvalidCredentials",
    "MissingField",
    "NoSuchUser",
    "PortalError",
    "SessionExpired",
    "StorageError",
    "Unauthenticated",
]

"""Username/password portal backed by a flat JSON user file."""

from __future__ import annotations

from typing import Any

from .store import InMemoryUserStore, JsonUserStore, UserStore, resolve_users_path


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the portal web application."""

    from .web import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "InMemoryUserStore",
    "JsonUserStore",
    "UserStore",
    "create_app",
    "resolve_users_path",
]

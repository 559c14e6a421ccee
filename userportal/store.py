"""User storage backends.

The portal keeps every account in memory and rewrites the whole collection on
each mutation. :class:`JsonUserStore` backs the collection with a single
indented JSON file; :class:`InMemoryUserStore` keeps nothing on disk.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import DuplicateUser, StorageError
from .models import User

logger = logging.getLogger("userportal.store")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_users_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the users file."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "users.json").resolve(strict=False)


def generate_user_id(now: datetime, taken: Iterable[str]) -> str:
    """Return a millisecond timestamp id that is not already in ``taken``."""

    used = set(taken)
    candidate = int(now.timestamp() * 1000)
    while str(candidate) in used:
        candidate += 1
    return str(candidate)


class UserStore(ABC):
    """Interface shared by every user storage backend."""

    def __init__(self) -> None:
        self._users: List[User] = []
        self._lock = threading.RLock()

    @abstractmethod
    def load(self) -> List[User]:
        """Read the full collection into memory."""

    @abstractmethod
    def persist(self) -> None:
        """Write the in-memory collection back to the backing medium."""

    def all(self) -> List[User]:
        with self._lock:
            return list(self._users)

    def find_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            return next((user for user in self._users if user.email == email), None)

    def find_by_name(self, name: str) -> Optional[User]:
        with self._lock:
            return next((user for user in self._users if user.name == name), None)

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            return next((user for user in self._users if user.id == user_id), None)

    def append(self, user: User) -> None:
        """Add ``user`` and persist the collection.

        Uniqueness of id, name and email is re-checked while the lock is held,
        so two registrations racing on the same name or email cannot both land.
        """

        with self._lock:
            for existing in self._users:
                if existing.id == user.id:
                    raise DuplicateUser(f"User id {user.id} already exists")
                if existing.email == user.email or existing.name == user.name:
                    raise DuplicateUser()
            self._users.append(user)
            try:
                self.persist()
            except StorageError:
                self._users.remove(user)
                raise

    def record_access(self, user_id: str, when: datetime) -> Optional[User]:
        """Update ``lastAccess`` in memory; it is written with the next persist."""

        with self._lock:
            user = self.find_by_id(user_id)
            if user is not None:
                user.last_access = when
            return user

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)


class InMemoryUserStore(UserStore):
    """Store that never touches the filesystem."""

    def __init__(self, users: Iterable[User] = ()) -> None:
        super().__init__()
        self._users = list(users)

    def load(self) -> List[User]:
        return self.all()

    def persist(self) -> None:
        return None


class JsonUserStore(UserStore):
    """Store backed by a JSON file holding a list of user records."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def initialize(self) -> bool:
        """Create an empty users file when none exists. Returns True if created."""

        if self._path.exists():
            return False
        _ensure_directory(self._path)
        self._write([])
        logger.info("Created empty users file at %s", self._path)
        return True

    def load(self) -> List[User]:
        try:
            raw_text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise StorageError(f"Users file {self._path} does not exist") from exc
        except OSError as exc:
            raise StorageError(f"Unable to read users file {self._path}: {exc}") from exc

        try:
            raw = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Users file {self._path} is not valid JSON: {exc}") from exc

        if not isinstance(raw, list):
            raise StorageError(f"Users file {self._path} must contain a JSON list")

        users: List[User] = []
        for index, entry in enumerate(raw):
            if not isinstance(entry, dict):
                raise StorageError(f"Entry {index} in {self._path} is not an object")
            try:
                users.append(User.from_dict(entry))
            except ValueError as exc:
                raise StorageError(f"Entry {index} in {self._path} is invalid: {exc}") from exc

        with self._lock:
            self._users = users
        logger.debug("Loaded %d user(s) from %s", len(users), self._path)
        return list(users)

    def persist(self) -> None:
        with self._lock:
            records = [user.to_dict() for user in self._users]
        try:
            self._write(records)
        except OSError as exc:
            logger.error("Failed to write users file %s: %s", self._path, exc)
            raise StorageError() from exc

    def _write(self, records: list) -> None:
        payload = json.dumps(records, indent=2, ensure_ascii=False) + "\n"
        fd, tmp_name = tempfile.mkstemp(dir=str(self._path.parent), prefix=".users-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = [
    "InMemoryUserStore",
    "JsonUserStore",
    "UserStore",
    "generate_user_id",
    "resolve_users_path",
]

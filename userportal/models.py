"""Domain models for the user portal."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    # Accept the trailing "Z" that JavaScript's toISOString() produces.
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class User:
    """Represents a registered account held in the user store."""

    id: str
    name: str
    email: str
    password_hash: str
    registered_at: datetime
    last_access: Optional[datetime] = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "User":
        """Create a :class:`User` from a raw JSON record."""
        password_hash = data.get("passwordHash", data.get("password"))
        required = {"id": data.get("id"), "name": data.get("name"), "email": data.get("email")}
        missing = [key for key, value in required.items() if value in (None, "")]
        if not password_hash:
            missing.append("passwordHash")
        if not data.get("registeredAt"):
            missing.append("registeredAt")
        if missing:
            raise ValueError(f"User record is missing fields: {', '.join(missing)}")

        last_access_raw = data.get("lastAccess")
        return User(
            id=str(data["id"]),
            name=str(data["name"]),
            email=str(data["email"]),
            password_hash=str(password_hash),
            registered_at=_parse_datetime(str(data["registeredAt"])),
            last_access=_parse_datetime(str(last_access_raw)) if last_access_raw else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "passwordHash": self.password_hash,
            "registeredAt": _serialize_datetime(self.registered_at),
        }
        if self.last_access is not None:
            record["lastAccess"] = _serialize_datetime(self.last_access)
        return record


__all__ = ["User"]

"""Configuration management for the user portal."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .passwords import DEFAULT_ROUNDS
from .sessions import DEFAULT_IDLE_TIMEOUT
from .store import resolve_users_path


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def _to_int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer value {value!r} for '{field}'") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the portal."""

    users_path: Path
    session_secret: Optional[str] = None
    idle_timeout: timedelta = DEFAULT_IDLE_TIMEOUT
    secure_cookies: bool = False
    host: str = "0.0.0.0"
    port: int = 5000
    password_rounds: int = DEFAULT_ROUNDS

    @staticmethod
    def from_dict(data: Mapping[str, Any], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""
        raw_users_path = data.get("users_path")
        if raw_users_path:
            expanded = Path(str(raw_users_path)).expanduser()
            if not expanded.is_absolute() and base_path is not None:
                expanded = base_path / expanded
            users_path = expanded.resolve(strict=False)
        else:
            users_path = resolve_users_path(None)

        idle_minutes = data.get("idle_timeout_minutes")
        idle_timeout = (
            timedelta(minutes=_to_int(idle_minutes, "idle_timeout_minutes"))
            if idle_minutes is not None
            else DEFAULT_IDLE_TIMEOUT
        )

        secret = data.get("session_secret")
        return Settings(
            users_path=users_path,
            session_secret=str(secret) if secret else None,
            idle_timeout=idle_timeout,
            secure_cookies=bool(data.get("secure_cookies", False)),
            host=str(data.get("host", "0.0.0.0")),
            port=_to_int(data.get("port", 5000), "port"),
            password_rounds=_to_int(data.get("password_rounds", DEFAULT_ROUNDS), "password_rounds"),
        )


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from a YAML file, then apply environment overrides."""
    raw: dict = {}
    base_path: Path | None = None
    if config_path is not None and config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        section = loaded.get("portal", loaded)
        if not isinstance(section, dict):
            raise ValueError("The 'portal' section must be a mapping")
        raw.update(section)
        base_path = config_path.parent

    env = os.environ
    if env.get("PORTAL_USERS_PATH"):
        raw["users_path"] = str(resolve_users_path(env["PORTAL_USERS_PATH"]))
    if env.get("PORTAL_SESSION_SECRET"):
        raw["session_secret"] = env["PORTAL_SESSION_SECRET"]
    if env.get("PORTAL_IDLE_MINUTES"):
        raw["idle_timeout_minutes"] = env["PORTAL_IDLE_MINUTES"]
    raw["secure_cookies"] = _env_bool(env.get("PORTAL_SESSION_SECURE"), bool(raw.get("secure_cookies", False)))

    return Settings.from_dict(raw, base_path=base_path)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "portal.yaml").resolve(strict=False)
    return candidate


__all__ = ["Settings", "load_settings", "resolve_config_path"]

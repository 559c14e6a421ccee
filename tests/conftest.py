from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userportal.config import Settings
from userportal.sessions import SessionManager
from userportal.store import JsonUserStore
from userportal.web import create_app


class FakeClock:
    """Manually advanced clock shared by the app and its session manager."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture()
def users_path(tmp_path: Path) -> Path:
    path = tmp_path / "data" / "users.json"
    path.parent.mkdir(parents=True)
    path.write_text("[]\n", encoding="utf-8")
    return path


@pytest.fixture()
def store(users_path: Path) -> JsonUserStore:
    json_store = JsonUserStore(users_path)
    json_store.load()
    return json_store


@pytest.fixture()
def settings(users_path: Path) -> Settings:
    return Settings(users_path=users_path, session_secret="not-so-secret", password_rounds=4)


@pytest.fixture()
def client(store: JsonUserStore, settings: Settings, clock: FakeClock):
    manager = SessionManager(idle_timeout=settings.idle_timeout, clock=clock)
    app = create_app(store=store, settings=settings, session_manager=manager, clock=clock)
    with TestClient(app) as test_client:
        yield test_client

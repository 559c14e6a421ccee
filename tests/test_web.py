from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from userportal.config import Settings
from userportal.store import InMemoryUserStore
from userportal.web import create_app

ANN = {"name": "Ann", "email": "ann@x.com", "password": "secret1"}


def _register(client: TestClient, **fields):
    payload = dict(ANN)
    payload.update(fields)
    return client.post("/register", data=payload, follow_redirects=False)


def _login(client: TestClient, email: str = ANN["email"], password: str = ANN["password"]):
    return client.post(
        "/login",
        data={"email": email, "password": password},
        follow_redirects=False,
    )


def test_public_pages_render(client: TestClient) -> None:
    for path in ("/", "/login", "/register"):
        response = client.get(path)
        assert response.status_code == 200


def test_register_then_login_reaches_dashboard(client: TestClient, users_path) -> None:
    response = _register(client)
    assert response.status_code == 302
    assert response.headers["location"].endswith("/login")

    stored = json.loads(users_path.read_text(encoding="utf-8"))
    assert stored[0]["name"] == "Ann"
    assert stored[0]["passwordHash"] != "secret1"
    assert "lastAccess" not in stored[0]

    login = _login(client)
    assert login.status_code == 302
    assert login.headers["location"].endswith("/dashboard")

    dashboard = client.get("/dashboard", follow_redirects=False)
    assert dashboard.status_code == 200
    assert "Welcome, Ann" in dashboard.text


def test_wrong_password_flashes_generic_message(client: TestClient) -> None:
    _register(client)

    response = _login(client, password="wrong")
    assert response.status_code == 302
    assert response.headers["location"].endswith("/login")

    page = client.get("/login")
    assert "Invalid email or password." in page.text

    # The flash is shown once.
    again = client.get("/login")
    assert "Invalid email or password." not in again.text


def test_unknown_email_uses_the_same_message(client: TestClient) -> None:
    response = _login(client, email="nobody@x.com")
    assert response.headers["location"].endswith("/login")
    page = client.get("/login")
    assert "Invalid email or password." in page.text
    assert "No user with that email" not in page.text


def test_duplicate_email_is_rejected(client: TestClient, store) -> None:
    _register(client)
    response = _register(client, name="Annie")

    assert response.status_code == 302
    assert response.headers["location"].endswith("/register")
    assert len(store) == 1
    assert "Name or email already registered" in client.get("/register").text


def test_missing_fields_are_rejected(client: TestClient, store) -> None:
    response = client.post("/register", data={"name": "Ann", "email": ""}, follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"].endswith("/register")
    assert len(store) == 0
    assert "Please provide name, email, and password" in client.get("/register").text


def test_storage_failure_flashes_generic_message(client: TestClient, store, monkeypatch) -> None:
    def _fail(records) -> None:
        raise OSError("read-only filesystem")

    monkeypatch.setattr(store, "_write", _fail)
    response = _register(client)

    assert response.headers["location"].endswith("/register")
    assert "Failed to register user" in client.get("/register").text
    assert len(store) == 0


def test_idle_session_expires_after_thirty_one_minutes(client: TestClient, clock) -> None:
    _register(client)
    _login(client)

    clock.advance(minutes=31)
    response = client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"].endswith("/login")
    assert "Session expired. Please login again." in client.get("/login").text

    # The expired session cannot be reused.
    assert client.get("/dashboard", follow_redirects=False).status_code == 302


def test_activity_keeps_session_alive(client: TestClient, clock, store) -> None:
    _register(client)
    _login(client)

    for _ in range(5):
        clock.advance(minutes=30)
        assert client.get("/dashboard", follow_redirects=False).status_code == 200

    assert store.find_by_email("ann@x.com").last_access == clock.current


def test_dashboard_without_session_redirects_without_flash(client: TestClient) -> None:
    response = client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"].endswith("/login")
    assert "alert" not in client.get("/login").text


def test_logout_ends_the_session(client: TestClient) -> None:
    _register(client)
    _login(client)
    assert client.get("/dashboard", follow_redirects=False).status_code == 200

    response = client.get("/logout", follow_redirects=False)
    assert response.headers["location"].endswith("/login")
    assert client.get("/dashboard", follow_redirects=False).status_code == 302


def test_create_app_requires_session_secret(tmp_path) -> None:
    with pytest.raises(RuntimeError):
        create_app(store=InMemoryUserStore(), settings=Settings(users_path=tmp_path / "users.json"))


def test_hashing_failure_during_registration_shows_generic_message(client: TestClient, store) -> None:
    response = _register(client, password="sec\x00ret")

    assert response.status_code == 302
    assert response.headers["location"].endswith("/register")
    page = client.get("/register").text
    assert "Failed to register user" in page
    assert "NULL" not in page
    assert len(store) == 0

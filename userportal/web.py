"""Browser-facing routes for the user portal."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from .auth import Authenticator
from .config import Settings
from .errors import (
    AuthenticatorError,
    InvalidCredentials,
    PortalError,
    SessionExpired,
    StorageError,
    Unauthenticated,
)
from .models import User
from .registration import register_user
from .sessions import Clock, SessionManager, utcnow
from .store import UserStore

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

SESSION_COOKIE_NAME = "userportal_session"
SESSION_TOKEN_KEY = "sid"
FLASH_KEY = "error"

logger = logging.getLogger("userportal.web")


def create_app(
    *,
    store: UserStore,
    settings: Settings,
    session_manager: Optional[SessionManager] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Create the portal web application around an already loaded store."""

    if not settings.session_secret:
        raise RuntimeError("PORTAL_SESSION_SECRET must be configured to serve the portal")

    clock = clock or utcnow
    if session_manager is None:
        session_manager = SessionManager(idle_timeout=settings.idle_timeout, clock=clock)
    authenticator = Authenticator(store)

    app = FastAPI(
        title="User Portal",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    if not settings.secure_cookies:
        logger.debug("Session cookies are not marked as secure")
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=SESSION_COOKIE_NAME,
        https_only=settings.secure_cookies,
        same_site="lax",
    )

    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

    def _set_error(request: Request, message: str) -> None:
        # Only one pending notice is kept; a newer one replaces it.
        request.session[FLASH_KEY] = message

    def _take_error(request: Request) -> str:
        message = request.session.pop(FLASH_KEY, None)
        return message if isinstance(message, str) else ""

    def _redirect(request: Request, route_name: str) -> RedirectResponse:
        return RedirectResponse(
            request.url_for(route_name),
            status_code=status.HTTP_302_FOUND,
        )

    def _render(request: Request, template: str, **context) -> HTMLResponse:
        context.setdefault("message", _take_error(request))
        return templates.TemplateResponse(request, template, context)

    def _authenticated_user(request: Request) -> User:
        """Run the session gate for a protected page.

        Raises :class:`Unauthenticated` or :class:`SessionExpired`; on success
        both the session and the user record carry a fresh access time.
        """

        token = request.session.get(SESSION_TOKEN_KEY)
        try:
            user_id = session_manager.check(token)
        except Unauthenticated:
            request.session.pop(SESSION_TOKEN_KEY, None)
            raise

        user = store.find_by_id(user_id)
        if user is None:
            session_manager.destroy(token)
            request.session.pop(SESSION_TOKEN_KEY, None)
            raise Unauthenticated()

        store.record_access(user.id, session_manager.last_access(token) or clock())
        return user

    @app.get("/", response_class=HTMLResponse, name="index")
    async def index(request: Request):
        return _render(request, "index.html")

    @app.get("/login", response_class=HTMLResponse, name="show_login")
    async def login_form(request: Request):
        return _render(request, "login.html")

    @app.post("/login", name="process_login")
    async def process_login(request: Request, email: str = Form(""), password: str = Form("")):
        try:
            user = authenticator.authenticate(email.strip(), password)
        except InvalidCredentials as exc:
            logger.warning("Failed login attempt for %s: %s", email, exc)
            _set_error(request, InvalidCredentials.message)
            return _redirect(request, "show_login")
        except AuthenticatorError:
            logger.exception("Password verification failed for %s", email)
            _set_error(request, InvalidCredentials.message)
            return _redirect(request, "show_login")

        session_manager.destroy(request.session.get(SESSION_TOKEN_KEY))
        request.session.clear()
        request.session[SESSION_TOKEN_KEY] = session_manager.create(user.id)
        logger.info("User %s signed in", user.id)
        return _redirect(request, "dashboard")

    @app.get("/register", response_class=HTMLResponse, name="show_register")
    async def register_form(request: Request):
        return _render(request, "register.html")

    @app.post("/register", name="process_register")
    async def process_register(
        request: Request,
        name: str = Form(""),
        email: str = Form(""),
        password: str = Form(""),
    ):
        try:
            register_user(
                store,
                name,
                email,
                password,
                now=clock(),
                rounds=settings.password_rounds,
            )
        except PortalError as exc:
            logger.warning(
                "Registration rejected (%s, status %s): %s",
                type(exc).__name__,
                exc.status_code,
                exc.message,
            )
            # Hashing failures are system faults; show the generic storage notice.
            if isinstance(exc, AuthenticatorError):
                _set_error(request, StorageError.message)
            else:
                _set_error(request, exc.message)
            return _redirect(request, "show_register")

        return _redirect(request, "show_login")

    @app.get("/dashboard", response_class=HTMLResponse, name="dashboard")
    async def dashboard(request: Request):
        try:
            user = _authenticated_user(request)
        except SessionExpired as exc:
            logger.info("Session expired; redirecting to login")
            _set_error(request, exc.message)
            return _redirect(request, "show_login")
        except Unauthenticated:
            return _redirect(request, "show_login")

        return _render(request, "dashboard.html", user=user)

    @app.get("/logout", name="logout")
    async def logout(request: Request):
        session_manager.destroy(request.session.get(SESSION_TOKEN_KEY))
        request.session.clear()
        return _redirect(request, "show_login")

    return app


__all__ = ["SESSION_COOKIE_NAME", "create_app"]

"""Server-side session handling with an idle timeout."""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from .errors import SessionExpired, Unauthenticated

DEFAULT_IDLE_TIMEOUT = timedelta(minutes=30)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IdleCheck:
    valid: bool
    last_access: datetime


def check_idle(now: datetime, last_access: datetime, timeout: timedelta = DEFAULT_IDLE_TIMEOUT) -> IdleCheck:
    """Decide whether a session idle since ``last_access`` is still usable.

    Idle time is counted in whole minutes, so a session expires only once the
    floored minute count is greater than the timeout. A valid result carries
    ``now`` as the refreshed access time; an invalid one keeps the old value.
    """

    elapsed_minutes = int((now - last_access).total_seconds() // 60)
    timeout_minutes = int(timeout.total_seconds() // 60)
    if elapsed_minutes > timeout_minutes:
        return IdleCheck(valid=False, last_access=last_access)
    return IdleCheck(valid=True, last_access=now)


@dataclass
class _SessionRecord:
    user_id: str
    last_access: datetime


class SessionManager:
    """Create, check, and revoke authenticated browser sessions."""

    def __init__(
        self,
        *,
        idle_timeout: timedelta = DEFAULT_IDLE_TIMEOUT,
        clock: Optional[Clock] = None,
    ) -> None:
        self._idle_timeout = idle_timeout
        self._clock = clock or utcnow
        self._sessions: Dict[str, _SessionRecord] = {}
        self._lock = threading.Lock()

    @property
    def idle_timeout(self) -> timedelta:
        return self._idle_timeout

    def create(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        record = _SessionRecord(user_id=user_id, last_access=self._clock())
        with self._lock:
            self._sessions[token] = record
        return token

    def check(self, token: Optional[str]) -> str:
        """Return the user id bound to ``token`` and refresh its idle clock.

        Raises :class:`Unauthenticated` for unknown tokens and
        :class:`SessionExpired` (after discarding the session) when the idle
        timeout has been exceeded.
        """

        if not token:
            raise Unauthenticated()
        now = self._clock()
        with self._lock:
            record = self._sessions.get(token)
            if record is None:
                raise Unauthenticated()
            result = check_idle(now, record.last_access, self._idle_timeout)
            if not result.valid:
                self._sessions.pop(token, None)
                raise SessionExpired()
            record.last_access = result.last_access
            return record.user_id

    def last_access(self, token: str) -> Optional[datetime]:
        with self._lock:
            record = self._sessions.get(token)
            return record.last_access if record else None

    def destroy(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["DEFAULT_IDLE_TIMEOUT", "IdleCheck", "SessionManager", "check_idle", "utcnow"]

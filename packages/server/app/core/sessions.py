"""
Signed cookie sessions.

The whole session lives in the cookie: an HS256-signed JWT whose ``data``
claim holds the key/value bag. Nothing is stored server-side, so committing
a session only produces a ``Set-Cookie`` header value. A cookie that is
missing, malformed, tampered with or expired reads as an empty session.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from http.cookies import SimpleCookie
from typing import Any, Optional

import jwt
import structlog
from starlette.requests import HTTPConnection

from app.core.config import get_settings

log = structlog.get_logger()
settings = get_settings()

USER_SESSION_KEY = "userId"
ORGANIZATION_SESSION_KEY = "organizationId"

_FLASH_PREFIX = "__flash_"
_MISSING = object()


class Session:
    """Mutable key/value bag read from (and written back to) one cookie."""

    def __init__(
        self,
        data: Optional[dict[str, Any]] = None,
        *,
        expires_at: Optional[datetime] = None,
    ):
        self._data: dict[str, Any] = dict(data or {})
        self.expires_at = expires_at
        self.mutated = False

    @property
    def data(self) -> dict[str, Any]:
        return dict(self._data)

    def has(self, key: str) -> bool:
        return key in self._data or f"{_FLASH_PREFIX}{key}" in self._data

    def get(self, key: str, default: Any = None) -> Any:
        flash_key = f"{_FLASH_PREFIX}{key}"
        if flash_key in self._data:
            self.mutated = True
            return self._data.pop(flash_key)
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.mutated = True

    def flash(self, key: str, value: Any) -> None:
        """Set a value that is removed the first time it is read."""
        self._data[f"{_FLASH_PREFIX}{key}"] = value
        self.mutated = True

    def unset(self, key: str) -> None:
        if self._data.pop(key, _MISSING) is not _MISSING:
            self.mutated = True

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __repr__(self) -> str:
        return f"Session({self._data!r})"


class SessionStorage:
    """Reads, signs and clears one session cookie."""

    def __init__(
        self,
        cookie_name: str,
        *,
        secret: str,
        algorithm: str = "HS256",
        secure: bool = True,
        path: str = "/",
        same_site: str = "lax",
    ):
        self.cookie_name = cookie_name
        self._secret = secret
        self._algorithm = algorithm
        self._secure = secure
        self._path = path
        self._same_site = same_site

    # -- decode --------------------------------------------------------------

    def read_cookie(self, cookie_value: Optional[str]) -> Session:
        """Verify a raw cookie value. Any failure yields an empty session."""
        if not cookie_value:
            return Session()
        try:
            payload = jwt.decode(cookie_value, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as e:
            log.info("session.rejected", cookie=self.cookie_name, reason=type(e).__name__)
            return Session()
        data = payload.get("data")
        if not isinstance(data, dict):
            return Session()
        exp = payload.get("exp")
        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None
        return Session(data, expires_at=expires_at)

    def get_session(self, conn: HTTPConnection) -> Session:
        return self.read_cookie(conn.cookies.get(self.cookie_name))

    # -- encode --------------------------------------------------------------

    def commit_session(self, session: Session, *, max_age: Optional[int] = None) -> str:
        """Sign the session and return a ``Set-Cookie`` header value.

        Without ``max_age`` the cookie lives for the browser session only.
        """
        now = datetime.now(timezone.utc)
        claims: dict[str, Any] = {"data": session.data, "iat": now}
        if max_age is not None:
            session.expires_at = now + timedelta(seconds=max_age)
            claims["exp"] = session.expires_at
        else:
            session.expires_at = None
        token = jwt.encode(claims, self._secret, algorithm=self._algorithm)
        session.mutated = False
        return self._serialize(token, max_age=max_age)

    def destroy_session(self, session: Optional[Session] = None) -> str:
        """Return a ``Set-Cookie`` header value that clears the cookie."""
        return self._serialize("", max_age=0, expires="Thu, 01 Jan 1970 00:00:00 GMT")

    def _serialize(
        self,
        value: str,
        *,
        max_age: Optional[int] = None,
        expires: Optional[str] = None,
    ) -> str:
        cookie: SimpleCookie = SimpleCookie()
        cookie[self.cookie_name] = value
        morsel = cookie[self.cookie_name]
        morsel["path"] = self._path
        morsel["httponly"] = True
        morsel["samesite"] = self._same_site
        if self._secure:
            morsel["secure"] = True
        if max_age is not None:
            morsel["max-age"] = max_age
        if expires is not None:
            morsel["expires"] = expires
        return morsel.OutputString()


session_storage = SessionStorage(
    settings.session_cookie_name,
    secret=settings.secret_key,
    algorithm=settings.session_algorithm,
    secure=settings.cookie_secure,
)

toast_storage = SessionStorage(
    settings.toast_cookie_name,
    secret=settings.secret_key,
    algorithm=settings.session_algorithm,
    secure=settings.cookie_secure,
)


def get_session(conn: HTTPConnection) -> Session:
    """The request's session, parsed once and shared for the whole request."""
    cached = getattr(conn.state, "session", None)
    if isinstance(cached, Session):
        return cached
    session = session_storage.get_session(conn)
    conn.state.session = session
    return session


def commit_session(session: Session, *, max_age: Optional[int] = None) -> str:
    return session_storage.commit_session(session, max_age=max_age)


def destroy_session(session: Optional[Session] = None) -> str:
    return session_storage.destroy_session(session)


def remember_max_age() -> int:
    return settings.session_remember_days * 24 * 60 * 60


def remaining_max_age(session: Session) -> Optional[int]:
    """Seconds left on a persistent session, or None for a browser-session cookie.

    Re-committing with this keeps a "remember me" login persistent.
    """
    if session.expires_at is None:
        return None
    remaining = (session.expires_at - datetime.now(timezone.utc)).total_seconds()
    return max(int(remaining), 0)

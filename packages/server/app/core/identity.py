"""
Identity resolution: session cookie -> user id -> User.

"Not logged in" is a normal state and yields ``None``. A user id that no
longer resolves is not: it raises ``SessionInconsistent`` so the stale
cookie is destroyed instead of silently degrading to anonymous.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session as get_db_session
from app.core.errors import SessionInconsistent, Unauthenticated
from app.core.sessions import USER_SESSION_KEY, get_session
from app.models.user import User
from app.services import users as user_service

log = structlog.get_logger()


def parse_uuid(value: object) -> Optional[uuid.UUID]:
    if not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def get_user_id(request: Request) -> Optional[uuid.UUID]:
    """Read ``userId`` from the session; malformed values read as absent."""
    return parse_uuid(get_session(request).get(USER_SESSION_KEY))


async def _load_user(user_id: uuid.UUID, session: AsyncSession) -> User:
    user = await user_service.find_user(user_id, session)
    if user is not None:
        return user

    log.warning("auth.dangling_user_id", user_id=str(user_id))
    raise SessionInconsistent()


async def get_user(request: Request, session: AsyncSession) -> Optional[User]:
    """Resolve the session user (with contact), or None when logged out."""
    user_id = get_user_id(request)
    if user_id is None:
        return None
    return await _load_user(user_id, session)


def require_user_id(request: Request, redirect_to: Optional[str] = None) -> uuid.UUID:
    """Like get_user_id, but sends anonymous callers to login.

    ``redirect_to`` defaults to the current path so login can return there.
    """
    user_id = get_user_id(request)
    if user_id is None:
        raise Unauthenticated(redirect_to=redirect_to or request.url.path)
    return user_id


async def require_session_user(request: Request, session: AsyncSession) -> User:
    return await _load_user(require_user_id(request), session)


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

async def current_user(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> User:
    return await require_session_user(request, session)


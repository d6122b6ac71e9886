"""
Authentication endpoints.

- Username/password login with optional "remember me"
- Logout (destroys the session cookie)
- Login surface payload (pending toast + redirect target)
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import generate_csrf_token, verify_password
from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import error_body, safe_redirect
from app.core.sessions import (
    ORGANIZATION_SESSION_KEY,
    USER_SESSION_KEY,
    commit_session,
    destroy_session,
    get_session as get_cookie_session,
    remember_max_age,
    toast_storage,
)
from app.services import memberships as membership_service
from app.services import users as user_service
from fundbook_shared.schemas.common import ErrorResponse
from fundbook_shared.schemas.users import LoginRequest

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()


def _set_csrf_cookie(response, csrf: str, max_age: Optional[int]) -> None:
    response.set_cookie(
        key=settings.csrf_cookie_name,
        value=csrf,
        httponly=False,  # JS must read this
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
        max_age=max_age,
    )


def _invalid_credentials() -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content=error_body("INVALID_CREDENTIALS", "Invalid username or password", 401),
    )


@router.get("/login")
async def login_page(request: Request, redirectTo: Optional[str] = None):
    """Login surface: returns any pending toast and the post-login destination."""
    toast_session = toast_storage.get_session(request)
    toast = toast_session.get("toast")
    response = JSONResponse({"toast": toast, "redirectTo": safe_redirect(redirectTo)})
    if toast is not None:
        response.headers.append("set-cookie", toast_storage.destroy_session(toast_session))
    return response


@router.post("/login", responses={401: {"model": ErrorResponse}})
async def login(
    body: LoginRequest,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate and start a session, pre-selecting a remembered org."""
    user = await user_service.find_user_by_username(body.username, session)

    if not user or not user.password_hash:
        log.warning("auth.login_failure", username=body.username, reason="unknown_user")
        return _invalid_credentials()

    if not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", username=body.username, reason="bad_password")
        return _invalid_credentials()

    cookie_session = get_cookie_session(request)
    cookie_session.set(USER_SESSION_KEY, str(user.id))
    cookie_session.unset(ORGANIZATION_SESSION_KEY)

    default = await membership_service.get_default_membership(user.id, session)
    if default is not None:
        cookie_session.set(ORGANIZATION_SESSION_KEY, str(default.org_id))

    max_age = remember_max_age() if body.remember else None
    response = RedirectResponse(safe_redirect(body.redirect_to), status_code=303)
    response.headers.append("set-cookie", commit_session(cookie_session, max_age=max_age))
    _set_csrf_cookie(response, generate_csrf_token(), max_age)

    log.info(
        "auth.login_success",
        user_id=str(user.id),
        remember=body.remember,
        default_org=str(default.org_id) if default else None,
    )
    return response


@router.post("/logout")
async def logout(request: Request):
    """Invalidate the current session."""
    response = RedirectResponse(settings.login_path, status_code=303)
    response.headers.append("set-cookie", destroy_session(get_cookie_session(request)))
    response.delete_cookie(settings.csrf_cookie_name, path="/")
    log.info("auth.logout")
    return response

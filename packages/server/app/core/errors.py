"""
Auth-flow errors and the single handler that turns them into responses.

Gates raise these anywhere in the call chain; ``handle_auth_flow_error`` is
the only place that destroys sessions or builds redirects for them.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

import structlog
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from app.core.config import get_settings
from app.core.sessions import Session, destroy_session, toast_storage
from fundbook_shared.schemas.common import Toast, ToastKind

log = structlog.get_logger()
settings = get_settings()


class AuthFlowError(Exception):
    """Base for every error raised by the session/org/role gates."""

    code = "AUTH_FLOW_ERROR"
    status_code = 400

    def __init__(self, message: str = "", *, redirect_to: Optional[str] = None):
        self.message = message or self.__class__.__doc__ or self.code
        self.redirect_to = redirect_to
        super().__init__(self.message)


class Unauthenticated(AuthFlowError):
    """Authentication required."""

    code = "UNAUTHENTICATED"
    status_code = 401


class SessionInconsistent(AuthFlowError):
    """Session refers to a user that no longer exists."""

    code = "SESSION_INCONSISTENT"
    status_code = 401


class NoOrganization(AuthFlowError):
    """You are not a member of any organizations."""

    code = "NO_ORGANIZATION"
    status_code = 403


class OrgNotSelected(AuthFlowError):
    """Choose an organization to continue."""

    code = "ORG_NOT_SELECTED"
    status_code = 409


class InvalidOrgSelection(AuthFlowError):
    """Organization is required."""

    code = "INVALID_ORG_SELECTION"
    status_code = 422

    def __init__(self, message: str = "", *, field: str = "orgId"):
        super().__init__(message)
        self.field = field


class Forbidden(AuthFlowError):
    """You do not have access to this resource."""

    code = "FORBIDDEN"
    status_code = 403


# ---------------------------------------------------------------------------
# Redirect helpers
# ---------------------------------------------------------------------------

def safe_redirect(to: Optional[str], default: str = "/") -> str:
    """Only allow same-origin absolute paths as post-auth destinations."""
    if not to or not isinstance(to, str):
        return default
    if not to.startswith("/") or to.startswith("//") or to.startswith("/\\"):
        return default
    return to


def normalize_redirect(to: Optional[str]) -> str:
    """Destination after choosing an org; the chooser itself maps to root."""
    target = safe_redirect(to)
    if target.split("?", 1)[0].rstrip("/") == settings.choose_org_path.rstrip("/"):
        return "/"
    return target


def with_redirect_param(path: str, redirect_to: Optional[str]) -> str:
    if not redirect_to:
        return path
    return f"{path}?{urlencode({'redirectTo': redirect_to})}"


def error_body(code: str, message: str, status: int) -> dict:
    return {"error": {"code": code, "message": message, "status": status}}


def redirect_with_toast(url: str, toast: Toast, *, headers: Optional[list[str]] = None) -> Response:
    """Redirect and carry a one-shot toast message in its own cookie."""
    toast_session = Session()
    toast_session.flash("toast", toast.model_dump(mode="json"))
    response = RedirectResponse(url, status_code=302)
    for value in headers or []:
        response.headers.append("set-cookie", value)
    response.headers.append("set-cookie", toast_storage.commit_session(toast_session))
    return response


def forced_logout(request: Request, *, toast: Optional[Toast] = None) -> Response:
    """Destroy the session cookie and send the user back to login."""
    cleared = destroy_session()
    if toast is not None:
        return redirect_with_toast(settings.login_path, toast, headers=[cleared])
    response = RedirectResponse(settings.login_path, status_code=302)
    response.headers.append("set-cookie", cleared)
    return response


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------

async def handle_auth_flow_error(request: Request, exc: AuthFlowError) -> Response:
    path = request.url.path

    if isinstance(exc, Unauthenticated):
        log.info("auth.unauthenticated", path=path)
        return RedirectResponse(
            with_redirect_param(settings.login_path, exc.redirect_to or path),
            status_code=302,
        )

    if isinstance(exc, SessionInconsistent):
        log.warning("auth.forced_logout", path=path, reason=exc.code)
        return forced_logout(request)

    if isinstance(exc, NoOrganization):
        log.warning("auth.forced_logout", path=path, reason=exc.code)
        return forced_logout(
            request,
            toast=Toast(kind=ToastKind.ERROR, title="Error", description=exc.message),
        )

    if isinstance(exc, OrgNotSelected):
        log.info("org.not_selected", path=path)
        return RedirectResponse(
            with_redirect_param(settings.choose_org_path, exc.redirect_to or path),
            status_code=302,
        )

    if isinstance(exc, InvalidOrgSelection):
        log.info("org.invalid_selection", path=path)
        body = error_body(exc.code, exc.message, exc.status_code)
        body["fieldErrors"] = {exc.field: exc.message}
        return JSONResponse(status_code=exc.status_code, content=body)

    log.info("auth.denied", path=path, code=exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.status_code),
    )

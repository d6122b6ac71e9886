"""
Organization chooser.

GET lists the caller's memberships; POST validates the pick, stores it as
the session's active org and optionally remembers it for the next login.
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.errors import InvalidOrgSelection, NoOrganization, normalize_redirect
from app.core.identity import parse_uuid, require_session_user
from app.core.sessions import (
    ORGANIZATION_SESSION_KEY,
    commit_session,
    get_session as get_cookie_session,
    remaining_max_age,
)
from app.services import memberships as membership_service
from fundbook_shared.schemas.organizations import (
    ChooseOrgOption,
    ChooseOrgRequest,
    ChooseOrgResponse,
)

log = structlog.get_logger()
router = APIRouter()


@router.get("/choose-org", response_model=ChooseOrgResponse, response_model_by_alias=True)
async def choose_org_page(
    request: Request,
    redirectTo: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """Orgs the caller can pick from, plus the normalized destination."""
    user = await require_session_user(request, session)
    memberships = await membership_service.list_memberships(user.id, session)
    if not memberships:
        raise NoOrganization()

    return ChooseOrgResponse(
        orgs=[
            ChooseOrgOption(id=m.org_id, name=m.org_name, role=m.role, is_default=m.is_default)
            for m in memberships
        ],
        redirect_to=normalize_redirect(redirectTo),
        remember_selection=any(m.is_default for m in memberships),
    )


@router.post("/choose-org")
async def choose_org(
    body: ChooseOrgRequest,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    """Set the active org and send the caller on to where they were going."""
    user = await require_session_user(request, session)
    if not await membership_service.list_memberships(user.id, session):
        raise NoOrganization()

    org_id = parse_uuid(body.org_id)
    if org_id is None:
        raise InvalidOrgSelection("Organization is required")

    await membership_service.select_org(user.id, org_id, body.remember_selection, session)

    cookie_session = get_cookie_session(request)
    cookie_session.set(ORGANIZATION_SESSION_KEY, str(org_id))

    response = RedirectResponse(normalize_redirect(body.redirect_to), status_code=303)
    response.headers.append(
        "set-cookie",
        commit_session(cookie_session, max_age=remaining_max_age(cookie_session)),
    )
    return response

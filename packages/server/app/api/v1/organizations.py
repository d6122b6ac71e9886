"""
Organization and caller-context API endpoints.

GET    /api/v1/me             - Resolved request context for the caller
GET    /api/v1/orgs           - Orgs the authenticated user belongs to
GET    /api/v1/orgs/current   - The session's active org
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import effective_role, require_user
from app.core.database import get_session
from app.core.identity import current_user
from app.core.tenancy import RequestContext
from app.models.user import User
from app.services import memberships as membership_service
from app.services import organizations as org_service
from fundbook_shared.schemas.organizations import MembershipListResponse, OrgResponse
from fundbook_shared.schemas.users import CurrentUserResponse, UserResponse

log = structlog.get_logger()
router = APIRouter()


@router.get("/me", response_model=CurrentUserResponse, tags=["Users"])
async def get_me(ctx: RequestContext = Depends(require_user)):
    return CurrentUserResponse(
        user=UserResponse.model_validate(ctx.user),
        organization_id=ctx.organization_id,
        org_role=ctx.org_role,
        effective_role=effective_role(ctx.user, ctx.membership),
    )


@router.get("/orgs", response_model=MembershipListResponse, tags=["Organizations"])
async def list_my_orgs(
    user: User = Depends(current_user),
    session: AsyncSession = Depends(get_session),
):
    """List orgs for the logged-in user. No active org required."""
    memberships = await membership_service.list_memberships(user.id, session)
    return MembershipListResponse(data=memberships)


@router.get("/orgs/current", response_model=OrgResponse, tags=["Organizations"])
async def get_current_org(
    ctx: RequestContext = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    org = await org_service.find_organization(ctx.organization_id, session)
    if org is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return OrgResponse.model_validate(org)

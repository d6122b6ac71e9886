"""
Active-organization resolution for a request.

Produces the request-scoped ``RequestContext`` that handlers receive
instead of reading any process-wide "current org".
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session as get_db_session
from app.core.errors import OrgNotSelected, Unauthenticated
from app.core.identity import parse_uuid, get_user
from app.core.sessions import ORGANIZATION_SESSION_KEY, get_session
from app.models.membership import Membership
from app.models.user import User
from app.services.memberships import MembershipNotFound, find_membership
from fundbook_shared.schemas.common import UserRole

log = structlog.get_logger()


@dataclass(frozen=True)
class RequestContext:
    """Resolved caller: the user, the active org and their membership there."""

    user: User
    organization_id: uuid.UUID
    membership: Optional[Membership]

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id

    @property
    def global_role(self) -> UserRole:
        return UserRole(self.user.role)

    @property
    def org_role(self) -> UserRole:
        """Per-org role; falls back to the global role without a membership."""
        if self.membership is not None:
            return UserRole(self.membership.role)
        return self.global_role


def get_active_org_id(request: Request) -> Optional[uuid.UUID]:
    return parse_uuid(get_session(request).get(ORGANIZATION_SESSION_KEY))


def require_active_org(request: Request, redirect_to: Optional[str] = None) -> uuid.UUID:
    """The session's active org id; raises OrgNotSelected when none is chosen."""
    org_id = get_active_org_id(request)
    if org_id is None:
        raise OrgNotSelected(redirect_to=redirect_to or request.url.path)
    return org_id


async def resolve_request_context(request: Request, session: AsyncSession) -> RequestContext:
    """Identity, then active org, then membership in that org."""
    user = await get_user(request, session)
    if user is None:
        raise Unauthenticated(redirect_to=request.url.path)

    org_id = require_active_org(request)
    try:
        membership = await find_membership(user.id, org_id, session)
    except MembershipNotFound:
        # Removed from the org since it was chosen
        log.info("org.membership_gone", user_id=str(user.id), org_id=str(org_id))
        raise OrgNotSelected(redirect_to=request.url.path)

    ctx = RequestContext(user=user, organization_id=org_id, membership=membership)
    request.state.context = ctx
    return ctx


async def get_request_context(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> RequestContext:
    """FastAPI dependency for org-scoped routes."""
    cached = getattr(request.state, "context", None)
    if isinstance(cached, RequestContext):
        return cached
    return await resolve_request_context(request, session)

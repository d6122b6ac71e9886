"""
Membership service: which orgs a user belongs to, and their remembered default.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import InvalidOrgSelection
from app.models.membership import Membership
from app.models.organization import Organization
from fundbook_shared.schemas.common import UserRole
from fundbook_shared.schemas.organizations import MembershipSummary

log = structlog.get_logger()


class MembershipNotFound(LookupError):
    """Raised when a (user, org) pair has no membership."""

    def __init__(self, user_id: uuid.UUID, org_id: uuid.UUID):
        self.user_id = user_id
        self.org_id = org_id
        super().__init__(f"User {user_id} is not a member of org {org_id}")


async def list_memberships(user_id: uuid.UUID, session: AsyncSession) -> list[MembershipSummary]:
    """One entry per org the user belongs to, in insertion order."""
    result = await session.execute(
        select(Membership, Organization.name)
        .join(Organization, Organization.id == Membership.org_id)
        .where(Membership.user_id == user_id)
        .order_by(Membership.created_at, Membership.id)
    )
    return [
        MembershipSummary(
            org_id=membership.org_id,
            org_name=org_name,
            role=UserRole(membership.role),
            is_default=membership.is_default,
        )
        for membership, org_name in result.all()
    ]


async def find_membership(
    user_id: uuid.UUID, org_id: uuid.UUID, session: AsyncSession
) -> Membership:
    """Get the membership for a (user, org) pair; raises MembershipNotFound."""
    result = await session.execute(
        select(Membership).where(Membership.user_id == user_id, Membership.org_id == org_id)
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise MembershipNotFound(user_id, org_id)
    return membership


async def get_default_membership(
    user_id: uuid.UUID, session: AsyncSession
) -> Optional[Membership]:
    """The membership the user asked to skip the chooser with, if any."""
    result = await session.execute(
        select(Membership)
        .where(Membership.user_id == user_id, Membership.is_default.is_(True))
        .order_by(Membership.updated_at.desc())
    )
    return result.scalars().first()


async def set_membership_default(
    user_id: uuid.UUID,
    org_id: Optional[uuid.UUID],
    value: bool,
    session: AsyncSession,
) -> None:
    """Set ``is_default`` on one membership, or on all of them when org_id is None."""
    stmt = update(Membership).where(Membership.user_id == user_id)
    if org_id is not None:
        stmt = stmt.where(Membership.org_id == org_id)
    await session.execute(stmt.values(is_default=value))
    await session.flush()


async def select_org(
    user_id: uuid.UUID,
    org_id: uuid.UUID,
    remember: bool,
    session: AsyncSession,
) -> Membership:
    """Validate a chosen org and update the remembered default.

    Always clears every default first, then sets the chosen one when
    ``remember`` is on, so stale duplicate defaults cannot survive.
    """
    try:
        membership = await find_membership(user_id, org_id, session)
    except MembershipNotFound as e:
        log.warning("org.selection_rejected", user_id=str(user_id), org_id=str(org_id))
        raise InvalidOrgSelection("You are not a member of that organization") from e

    await set_membership_default(user_id, None, False, session)
    if remember:
        await set_membership_default(user_id, org_id, True, session)
    await session.refresh(membership)

    log.info("org.selected", user_id=str(user_id), org_id=str(org_id), remember=remember)
    return membership

"""
Organization service: org lookups and creation.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.membership import Membership
from app.models.organization import Organization
from fundbook_shared.schemas.common import UserRole

log = structlog.get_logger()


async def find_organization(org_id: uuid.UUID, session: AsyncSession) -> Optional[Organization]:
    return await session.get(Organization, org_id)


async def list_organizations(session: AsyncSession) -> list[Organization]:
    result = await session.execute(select(Organization).order_by(Organization.name))
    return list(result.scalars().all())


async def create_org(
    name: str,
    host: str,
    session: AsyncSession,
    *,
    subdomain: Optional[str] = None,
    reply_to_email: str = "noreply",
) -> Organization:
    org = Organization(name=name, host=host, subdomain=subdomain, reply_to_email=reply_to_email)
    session.add(org)
    await session.flush()
    log.info("org.created", org_id=str(org.id), name=name)
    return org


async def add_member(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    session: AsyncSession,
    *,
    role: UserRole = UserRole.USER,
    is_default: bool = False,
) -> Membership:
    """Add a user to an org. The (user, org) pair is unique at the database level."""
    membership = Membership(
        user_id=user_id,
        org_id=org_id,
        role=role.value,
        is_default=is_default,
    )
    session.add(membership)
    await session.flush()
    log.info("org.member_added", org_id=str(org_id), user_id=str(user_id), role=role.value)
    return membership

"""
User service: lookups used by the identity resolver and user creation.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlmodel import select

from app.models.membership import Membership
from app.models.user import Contact, User
from fundbook_shared.schemas.common import UserRole

log = structlog.get_logger()


async def find_user(
    user_id: uuid.UUID, session: AsyncSession, *, include_contact: bool = True
) -> Optional[User]:
    """Get a user by id, optionally with their contact loaded."""
    stmt = select(User).where(User.id == user_id)
    if include_contact:
        stmt = stmt.options(selectinload(User.contact))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def find_user_by_username(username: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(
        select(User)
        .where(User.username == username.lower())
        .options(selectinload(User.contact))
    )
    return result.scalar_one_or_none()


async def create_user(
    username: str,
    first_name: str,
    session: AsyncSession,
    *,
    last_name: Optional[str] = None,
    password_hash: Optional[str] = None,
    role: UserRole = UserRole.USER,
) -> User:
    """Create a user and their contact. Does not commit.

    Raises IntegrityError if the username is taken.
    """
    contact = Contact(first_name=first_name, last_name=last_name, email=username.lower())
    session.add(contact)
    user = User(
        username=username.lower(),
        password_hash=password_hash,
        role=role.value,
        contact_id=contact.id,
        contact=contact,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        log.warning("user.create_conflict", username=username.lower())
        raise
    log.info("user.created", user_id=str(user.id), role=user.role)
    return user


async def list_org_members(org_id: uuid.UUID, session: AsyncSession) -> list[dict]:
    """List all users in an org with their membership info."""
    result = await session.execute(
        select(User, Contact, Membership)
        .join(Membership, Membership.user_id == User.id)
        .join(Contact, Contact.id == User.contact_id)
        .where(Membership.org_id == org_id)
        .order_by(Membership.created_at, Membership.id)
    )
    rows = result.all()
    return [
        {
            "id": user.id,
            "username": user.username,
            "name": " ".join(part for part in (contact.first_name, contact.last_name) if part),
            "role": membership.role,
            "is_default": membership.is_default,
        }
        for user, contact, membership in rows
    ]

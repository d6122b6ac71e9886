"""
Script to create an initial SUPERADMIN user with a password for local testing.
"""

import asyncio
import argparse

from sqlmodel import select

from app.core.auth import hash_password
from app.core.database import get_session_context, init_db
from app.models.membership import Membership
from app.models.organization import Organization
from app.services import organizations as org_service
from app.services import users as user_service
from fundbook_shared.schemas.common import UserRole


async def create_admin(email: str, password: str, org_name: str, host: str):
    await init_db()

    async with get_session_context() as session:
        # 1. Ensure the organization exists
        result = await session.execute(select(Organization).where(Organization.name == org_name))
        org = result.scalars().first()

        if not org:
            org = await org_service.create_org(org_name, host, session)
            print(f"Created organization: {org_name}")

        # 2. Check if user already exists
        user = await user_service.find_user_by_username(email, session)

        if not user:
            user = await user_service.create_user(
                email,
                email.split("@")[0],
                session,
                password_hash=hash_password(password),
                role=UserRole.SUPERADMIN,
            )
            print(f"Created user: {email}")
        else:
            print(f"User {email} already exists.")

        # 3. Ensure membership exists
        result = await session.execute(
            select(Membership).where(Membership.user_id == user.id, Membership.org_id == org.id)
        )
        if result.scalar_one_or_none() is None:
            await org_service.add_member(org.id, user.id, session, role=UserRole.ADMIN)
            print(f"Added {email} as ADMIN of {org_name}.")

    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a local superadmin user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--org", default="Default Fund", help="Organization name")
    parser.add_argument("--host", default="localhost", help="Organization host")

    args = parser.parse_args()

    asyncio.run(create_admin(args.email, args.password, args.org, args.host))

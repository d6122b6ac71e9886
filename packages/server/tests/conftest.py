"""
Shared fixtures: an in-memory SQLite database behind the real app.

Each request gets its own AsyncSession from the test engine, the same way
``get_session`` works against Postgres.
"""

from __future__ import annotations

from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import hash_password
from app.core.config import get_settings
from app.core.database import get_session
from app.core.sessions import Session, SessionStorage, session_storage
from app.main import app as fastapi_app
from app.services import organizations as org_service
from app.services import users as user_service
from fundbook_shared.schemas.common import UserRole

settings = get_settings()

PASSWORD = "correct horse battery staple"

# bcrypt at cost 12 is slow; hash once for every fixture user
_PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_test_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = _get_test_session
    # https so Secure cookies round-trip through the client's jar
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="https://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    async def _make(
        username: str,
        *,
        role: UserRole = UserRole.USER,
        first_name: str = "Test",
        with_password: bool = True,
    ):
        user = await user_service.create_user(
            username,
            first_name,
            db_session,
            password_hash=_PASSWORD_HASH if with_password else None,
            role=role,
        )
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_org(db_session):
    async def _make(name: str, *, host: str = "fundbook.dev", subdomain: Optional[str] = None):
        org = await org_service.create_org(name, host, db_session, subdomain=subdomain)
        await db_session.commit()
        return org

    return _make


@pytest.fixture
def add_member(db_session):
    async def _add(org, user, *, role: UserRole = UserRole.USER, is_default: bool = False):
        membership = await org_service.add_member(
            org.id, user.id, db_session, role=role, is_default=is_default
        )
        await db_session.commit()
        return membership

    return _add


@pytest.fixture
async def two_org_member(make_user, make_org, add_member):
    """A user who is ADMIN of "Alpha Fund" and USER of "Beta Fund"."""
    user = await make_user("morgan@fundbook.dev", first_name="Morgan")
    org_a = await make_org("Alpha Fund", subdomain="alpha")
    org_b = await make_org("Beta Fund", subdomain="beta")
    await add_member(org_a, user, role=UserRole.ADMIN)
    await add_member(org_b, user, role=UserRole.USER)
    return user, org_a, org_b


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def cookie_value(set_cookie: str) -> str:
    """The value part of a ``Set-Cookie`` header."""
    return set_cookie.split(";", 1)[0].split("=", 1)[1]


def set_cookie_headers(response, name: str) -> list[str]:
    return [h for h in response.headers.get_list("set-cookie") if h.startswith(f"{name}=")]


def signed_cookie(data: dict, *, storage: SessionStorage = session_storage, max_age=None) -> str:
    """A signed cookie value carrying ``data``."""
    return cookie_value(storage.commit_session(Session(data), max_age=max_age))


def session_header(data: dict) -> dict[str, str]:
    return {"Cookie": f"{settings.session_cookie_name}={signed_cookie(data)}"}


async def login(client: AsyncClient, username: str, *, remember: bool = False, redirect_to=None):
    body = {"username": username, "password": PASSWORD, "remember": remember}
    if redirect_to is not None:
        body["redirectTo"] = redirect_to
    return await client.post("/login", json=body)


def csrf_headers(client: AsyncClient) -> dict[str, str]:
    return {"X-CSRF-Token": client.cookies.get(settings.csrf_cookie_name)}

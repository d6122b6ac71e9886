"""
Database engine and per-request transactions.

Each request runs in one transaction: the org chooser's clear-then-set of
``Membership.is_default`` and the login lookups either all commit after the
handler returns or all roll back, including when a gate raises an
``AuthFlowError`` part way through.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Objects stay readable after commit; responses are built from them
async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create the users, contacts, organizations and memberships tables (development only)."""
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def get_session_context():
    """One transaction, committed on success and rolled back on any error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: the request's transaction (see module docstring)."""
    async with get_session_context() as session:
        yield session

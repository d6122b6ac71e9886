"""Shared columns for Fundbook tables.

``created_at`` is the insertion order membership listings sort by.
``updated_at`` is bumped on every UPDATE, including bulk ``update()``
statements, which is how the most recently remembered default is found.
"""

from datetime import datetime, timezone
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(*, touch_on_update: bool = False):
    column_kwargs = {"server_default": sa.func.now()}
    if touch_on_update:
        column_kwargs["onupdate"] = utcnow
    return Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs=column_kwargs,
        sa_type=sa.DateTime(timezone=True),
    )


class TimestampMixin(SQLModel):
    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp(touch_on_update=True)


class UUIDMixin(SQLModel):
    # Generated client-side so related rows can reference it before flush
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)

"""User and contact models."""

from typing import Optional
import uuid

from sqlmodel import Field, Relationship, SQLModel

from .base import TimestampMixin, UUIDMixin


class Contact(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "contacts"

    first_name: str = Field(nullable=False)
    last_name: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    org_id: Optional[uuid.UUID] = Field(default=None, foreign_key="organizations.id", index=True)


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    username: str = Field(unique=True, index=True, nullable=False)
    password_hash: Optional[str] = Field(default=None)  # set once the password is set up
    role: str = Field(default="USER", nullable=False)  # USER | ADMIN | SUPERADMIN (global ceiling)
    contact_id: uuid.UUID = Field(foreign_key="contacts.id", unique=True, nullable=False)

    contact: Optional[Contact] = Relationship(sa_relationship_kwargs={"lazy": "raise"})

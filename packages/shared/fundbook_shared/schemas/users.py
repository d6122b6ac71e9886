"""User, contact and login schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .common import UserRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    """Username/password login."""
    username: EmailStr
    password: str = Field(min_length=1)
    remember: bool = False
    redirect_to: Optional[str] = Field(default=None, alias="redirectTo")

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ContactResponse(BaseModel):
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    """Single user with their global role."""
    id: uuid.UUID
    username: str
    role: UserRole
    contact: Optional[ContactResponse] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberResponse(BaseModel):
    """A user as seen from inside one organization."""
    id: uuid.UUID
    username: str
    name: str
    role: UserRole
    is_default: bool = False


class MemberListResponse(BaseModel):
    data: List[MemberResponse]


class CurrentUserResponse(BaseModel):
    """The resolved request context for the caller."""
    user: UserResponse
    organization_id: uuid.UUID
    org_role: UserRole
    effective_role: UserRole

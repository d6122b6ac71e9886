"""
Organization and membership schemas shared between server and clients.

Covers: membership listing, the org chooser payloads, and org detail
responses.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import UserRole


# ---------------------------------------------------------------------------
# Membership listing
# ---------------------------------------------------------------------------

class MembershipSummary(BaseModel):
    """One organization the user belongs to, with their role there."""

    org_id: uuid.UUID
    org_name: str
    role: UserRole
    is_default: bool = False

    model_config = ConfigDict(frozen=True)


class MembershipListResponse(BaseModel):
    data: list[MembershipSummary]


# ---------------------------------------------------------------------------
# Org chooser
# ---------------------------------------------------------------------------

class ChooseOrgOption(BaseModel):
    id: uuid.UUID
    name: str
    role: UserRole
    is_default: bool = Field(alias="isDefault")

    model_config = ConfigDict(populate_by_name=True)


class ChooseOrgResponse(BaseModel):
    """Payload for the chooser screen."""

    orgs: list[ChooseOrgOption]
    redirect_to: str = Field(alias="redirectTo")
    remember_selection: bool = Field(alias="rememberSelection")

    model_config = ConfigDict(populate_by_name=True)


class ChooseOrgRequest(BaseModel):
    """Submitted org selection."""

    org_id: Optional[str] = Field(default=None, alias="orgId")
    redirect_to: Optional[str] = Field(default=None, alias="redirectTo")
    remember_selection: bool = Field(default=False, alias="rememberSelection")

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Org details
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    host: str
    subdomain: Optional[str] = None
    base_url: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrgListResponse(BaseModel):
    data: list[OrgResponse]

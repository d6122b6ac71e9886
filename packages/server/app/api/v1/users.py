"""
User Management API endpoints.

GET    /api/v1/users   - List members of the active org (Admin only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import require_admin
from app.core.database import get_session
from app.core.tenancy import RequestContext
from app.services import users as user_service
from fundbook_shared.schemas.common import ErrorResponse
from fundbook_shared.schemas.users import MemberListResponse, MemberResponse

router = APIRouter()


@router.get(
    "",
    response_model=MemberListResponse,
    responses={403: {"model": ErrorResponse}},
    tags=["Users"],
)
async def list_users(
    ctx: RequestContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """List all members of the active org."""
    items = await user_service.list_org_members(ctx.organization_id, session)
    return MemberListResponse(data=[MemberResponse(**item) for item in items])

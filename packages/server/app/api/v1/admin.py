"""
Platform administration endpoints (global SUPERADMIN only).

GET    /api/v1/admin/organizations   - Every organization on the platform
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import require_super_admin
from app.core.database import get_session
from app.core.tenancy import RequestContext
from app.services import organizations as org_service
from fundbook_shared.schemas.organizations import OrgListResponse, OrgResponse

log = structlog.get_logger()
router = APIRouter()


@router.get("/organizations", response_model=OrgListResponse, tags=["Admin"])
async def list_all_organizations(
    ctx: RequestContext = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
):
    orgs = await org_service.list_organizations(session)
    log.info("admin.list_organizations", user_id=str(ctx.user_id), count=len(orgs))
    return OrgListResponse(data=[OrgResponse.model_validate(o) for o in orgs])

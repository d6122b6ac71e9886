"""
API v1 Router

Org-scoped endpoints act on the session's active organization; there is
no org identifier in the path.
"""

from fastapi import APIRouter
from . import admin, organizations, users

router = APIRouter()

router.include_router(organizations.router)
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])


@router.get("/", tags=["API"])
async def api_root():
    """API root - returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/me",
            "/orgs",
            "/orgs/current",
            "/users",
            "/admin/organizations",
        ],
    }

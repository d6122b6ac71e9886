"""
Fundbook API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.errors import AuthFlowError, handle_auth_flow_error
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from app.api.v1 import router as api_v1_router
from app.api.v1.auth import router as auth_router
from app.api.v1.choose_org import router as choose_org_router

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Fundbook",
        description="Multi-tenant record keeping for nonprofit funds.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Session, org and role gates all surface through this one handler
    app.add_exception_handler(AuthFlowError, handle_auth_flow_error)

    # Middleware (outermost first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-CSRF-Token"],
    )

    # Login and org chooser surfaces (not org-scoped)
    app.include_router(auth_router, tags=["Authentication"])
    app.include_router(choose_org_router, tags=["Organizations"])

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("Fundbook starting", debug=settings.debug)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Fundbook shutting down")

    return app


app = create_app()

"""
Kanban API Server

Entry point for the FastAPI application.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import database_ready, engine, get_session
from app.core.errors import AccessDenied, LookupFailure, ResourceNotFound
from app.core.logs import configure_logging
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from app.api.v1 import router as api_v1_router
from kanban_shared.schemas.common import APIError, ErrorBody

settings = get_settings()
log = structlog.get_logger()


def register_exception_handlers(app: FastAPI) -> None:
    """Map access policy outcomes to HTTP responses."""

    @app.exception_handler(ResourceNotFound)
    async def not_found_handler(request: Request, exc: ResourceNotFound):
        return JSONResponse(status_code=404, content={"detail": f"{exc.resource} not found"})

    @app.exception_handler(AccessDenied)
    async def denied_handler(request: Request, exc: AccessDenied):
        return JSONResponse(
            status_code=403,
            content={"detail": f"Access denied: you cannot access this {exc.resource.lower()}"},
        )

    @app.exception_handler(LookupFailure)
    async def lookup_failure_handler(request: Request, exc: LookupFailure):
        log.error(
            "access.lookup_failed",
            lookup=exc.lookup,
            path=request.url.path,
            error=repr(exc.cause),
        )
        body = APIError(
            error=ErrorBody(
                code="LOOKUP_FAILURE",
                message="The data store could not be reached.",
                status=500,
            )
        )
        return JSONResponse(status_code=500, content=body.model_dump())


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_format)
    log.info("kanban.starting", debug=settings.debug)
    yield
    await engine.dispose()
    log.info("kanban.stopping")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        lifespan=lifespan,
        title="Kanban",
        description="Boards, lists and cards for workspaces and their members.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (order matters: outermost first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )

    register_exception_handlers(app)

    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check(session: AsyncSession = Depends(get_session)):
        """Readiness check: the database must answer."""
        if not await database_ready(session):
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ready"}

    return app


app = create_app()

"""
FastAPI Application Entry Point

MenuChat Ordering Platform - tenant-scoped widget and dashboard API.
Runs against PostgreSQL (SqlDataStore) or fully in memory (MemoryDataStore).

Endpoints:
    - POST /sessions: Open a widget session
    - POST /chat: Deterministic menu assistant
    - GET /menu: Menu grouped by section
    - POST /orders: Place an order
    - GET /orders/{order_id}: Public order status
    - /dashboard/*: Menu and order management
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from menuchat.api import dashboard, orders, widget
from menuchat.core.config import Settings, get_settings, setup_logging
from menuchat.core.envelope import error_response, fail_response, ok_response
from menuchat.core.errors import ApiError, ErrorCode
from menuchat.schemas import HealthView
from menuchat.services.datastore import BaseDataStore, SqlDataStore, build_datastore
from menuchat.services.validation import format_issues

logger = logging.getLogger(__name__)

# Request sources FastAPI prefixes to error locations
REQUEST_SOURCES = ("body", "query", "path", "header", "cookie")

CODE_BY_HTTP_STATUS = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    409: ErrorCode.CONFLICT,
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    settings: Settings = app.state.settings
    datastore: BaseDataStore = app.state.datastore

    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    if isinstance(datastore, SqlDataStore) and settings.should_create_tables:
        await datastore.database.create_all()
        logger.info("✅ Database initialized")

    logger.info(f"✅ Datastore: {datastore.provider_name}")

    if not settings.is_development:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await datastore.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def _expose(request: Request) -> bool:
    return request.app.state.settings.expose_error_details


async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code.value}: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.code.value}")
    return error_response(exc, expose_details=_expose(request))


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        loc = tuple(error.get("loc", ()))
        if loc and loc[0] in REQUEST_SOURCES:
            loc = loc[1:]
        errors.append({**error, "loc": loc})
    return fail_response(
        ErrorCode.BAD_REQUEST,
        extra={"issues": format_issues(errors)},
        expose_details=_expose(request),
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        code = ErrorCode.INTERNAL_ERROR
    else:
        code = CODE_BY_HTTP_STATUS.get(exc.status_code, ErrorCode.BAD_REQUEST)
    # The status always follows the code, so unmapped 4xx statuses become 400
    return fail_response(
        code,
        None,
        {"detail": exc.detail},
        expose_details=_expose(request),
        headers=getattr(exc, "headers", None),
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return fail_response(
        ErrorCode.INTERNAL_ERROR,
        extra={"error": str(exc)},
        expose_details=_expose(request),
    )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    datastore: Optional[BaseDataStore] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration (defaults to the cached environment settings)
        datastore: Datastore client (defaults to the configured backend)

    Returns:
        FastAPI application with the datastore injected into app.state
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Multi-tenant restaurant ordering API: widget sessions, a deterministic "
            "menu assistant, ordering and dashboard menu management."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.datastore = datastore or build_datastore(settings)

    origins = settings.cors_allow_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected)

    app.include_router(widget.router)
    app.include_router(orders.router)
    app.include_router(dashboard.router)

    register_operational_routes(app)
    return app


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

def register_operational_routes(app: FastAPI) -> None:

    @app.get("/", tags=["Root"])
    async def root(request: Request) -> JSONResponse:
        """API root with navigation links."""
        settings: Settings = request.app.state.settings
        return ok_response({
            "message": f"🍕 Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.env_mode.value,
            "documentation": "/docs",
            "health": "/health",
        })

    @app.get("/health", tags=["Health"], summary="System Health Check")
    async def health_check(request: Request) -> JSONResponse:
        """Verify the datastore is reachable."""
        settings: Settings = request.app.state.settings
        datastore: BaseDataStore = request.app.state.datastore

        healthy = await datastore.ping()
        health = HealthView(
            status="operational" if healthy else "degraded",
            database="healthy" if healthy else "unhealthy",
            environment=settings.env_mode.value,
            version=settings.app_version,
            timestamp=datetime.now(timezone.utc),
        )
        return ok_response(health.model_dump(by_alias=True, mode="json"))


app = create_app()


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "menuchat.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        reload=_settings.is_development,
        log_level="debug" if _settings.debug else "info",
    )

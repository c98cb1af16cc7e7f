"""
FastAPI Application Entry Point

QRAR Restaurant Ordering Platform
Supports both Mock services (development) and Real APIs (production).

Routes:
    - /restaurants: Merchant registration, login, profile, public info & menu
    - /categories, /products: Menu management
    - /orders: Order placement, workflow and dashboard analytics
    - /users: Customer registration and statistics
    - /offers, /coupons, /combo-deals, /popups, /slider-images: Loyalty
    - /ws/orders: Live order events for the merchant dashboard
    - /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api import routers
from qrar.core.config import DEFAULT_JWT_SECRET, get_settings, setup_logging
from qrar.database import engine, get_db, init_db
from qrar.schemas import HealthResponse
from qrar.services.media import BaseMediaService, get_media_service
from qrar.services.realtime import BaseEventBroker, get_event_broker

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    if settings.use_real_services and settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.critical("❌ JWT_SECRET is still the default; refusing to start")
        raise RuntimeError("JWT_SECRET must be set outside development mode")

    await init_db()
    logger.info("✅ Database initialized")

    broker = app.dependency_overrides.get(get_event_broker, get_event_broker)()
    await broker.start()
    logger.info(f"✅ Event Broker: {broker.provider_name}")

    media_service = app.dependency_overrides.get(get_media_service, get_media_service)()
    logger.info(f"✅ Media Service: {media_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await broker.stop()
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Multi-tenant QR ordering backend: menus, orders, loyalty artifacts "
        "and live order notifications for restaurant dashboards."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in routers:
    app.include_router(router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    broker: BaseEventBroker = Depends(get_event_broker),
    media: BaseMediaService = Depends(get_media_service),
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(text("1")))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    realtime_status = "healthy" if await broker.health_check() else "unhealthy"
    media_status = "healthy" if await media.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, realtime_status, media_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.env_mode.value,
        database=db_status,
        realtime=f"{realtime_status} ({broker.provider_name})",
        media_service=f"{media_status} ({media.provider_name})",
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures as 400, not FastAPI's default 422."""
    logger.info(f"Validation failed on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid request",
            "detail": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "qrar.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    run()

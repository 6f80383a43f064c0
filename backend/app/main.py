"""
Analytics Dashboard, main FastAPI application
=============================================
Initializes the app with middleware, routes, and lifecycle events.
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.realtime import router as realtime_router
from app.api.v1.router import api_v1_router
from app.core.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import get_logger, setup_logging
from app.core.monitoring import register_request_timing, setup_sentry
from app.core.redis import close_redis

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown events."""
    # ── Startup ──────────────────────────────────────────────────────────
    setup_logging()
    setup_sentry()
    logger = get_logger("main")
    logger.info("📊 Starting %s (env=%s)", settings.APP_NAME, settings.APP_ENV)
    logger.info("API prefix: %s", settings.API_PREFIX)

    # In production, rely on Alembic migrations exclusively.
    # In dev/test, auto-create tables for convenience.
    if settings.is_production:
        logger.info("🔒 Production mode, using Alembic migrations only (skipping create_all)")
    else:
        try:
            from app.core.database import engine, Base

            # Import ALL models so Base.metadata knows about them
            from app.models.analytics import AnalyticsEvent  # noqa: F401
            from app.models.user import User  # noqa: F401

            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("✅ Database tables verified (dev mode, create_all)")
        except Exception as e:
            logger.error("Database setup error: %s", str(e))
            logger.info("💡 Make sure PostgreSQL is running: docker compose up -d")

    yield

    # ── Shutdown ─────────────────────────────────────────────────────────
    logger.info("Shutting down %s...", settings.APP_NAME)
    await close_redis()
    logger.info("Goodbye!")


def create_app() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description=(
            "Backend API for the analytics dashboard: filtered aggregates, "
            "time-series charts, paginated records and live updates."
        ),
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # ── CORS Middleware ──────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_request_timing(app)

    # ── Error envelope ───────────────────────────────────────────────────
    register_exception_handlers(app)

    # ── Routes ───────────────────────────────────────────────────────────
    app.include_router(api_v1_router, prefix=settings.API_PREFIX)
    app.include_router(realtime_router)

    # ── Root Endpoint ────────────────────────────────────────────────────
    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": f"{settings.API_PREFIX}/health",
        }

    return app


# Create the app instance
app = create_app()


def run() -> None:
    """Serve the API with uvicorn on HOST:PORT."""
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )


if __name__ == "__main__":
    run()

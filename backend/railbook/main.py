"""
Railbook Reservation API - Main Application Entry Point

Allocates a fixed pool of train berths across three tiers:
- CNF (confirmed), RAC (reservation against cancellation), WAIT (waitlist)
- Priority lower berths for senior citizens and women travelling with children
- Cancellation promotes the oldest RAC and waitlisted holders in one transaction
- Single-writer transaction scopes so the pool is never overbooked
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from railbook.core.config import get_settings
from railbook.core.logging import setup_logging, get_logger
from railbook.core.metrics import metrics_endpoint
from railbook.api.router import api_router
from railbook.api.middleware import RequestLoggingMiddleware
from railbook.api.exception_handlers import register_exception_handlers
from railbook.db.base import Base
from railbook.db.session import build_engine, build_coordinator
from railbook.services.cache_service import get_redis, close_redis, get_cache_stats

settings = get_settings()


def create_app(engine: Optional[AsyncEngine] = None) -> FastAPI:
    """
    Build the application. Tests pass their own engine; otherwise one is
    created from DATABASE_URL at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle: startup and shutdown hooks."""
        setup_logging()
        logger = get_logger(__name__)

        logger.info(
            "application_starting",
            app=settings.APP_NAME,
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
        )

        app_engine = engine or build_engine(settings)
        if settings.DB_CREATE_TABLES:
            async with app_engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("database_tables_ready")
        app.state.coordinator = build_coordinator(app_engine, settings)

        redis_client = await get_redis()
        if redis_client:
            logger.info("redis_ready")
        else:
            logger.warning("redis_unavailable", message="Running without availability cache")

        yield

        await close_redis()
        if engine is None:
            await app_engine.dispose()
        logger.info("application_shutdown")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Tiered berth reservation API with cancellation-driven promotion",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for Docker and load balancers."""
        cache_stats = await get_cache_stats()
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "cache": cache_stats,
        }

    @app.get("/metrics", tags=["Health"], include_in_schema=False)
    async def metrics():
        return metrics_endpoint()

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    return app


app = create_app()

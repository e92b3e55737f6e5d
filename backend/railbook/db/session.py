"""
Database engine, session factory and FastAPI dependencies.

The engine is built once at startup and handed down explicitly:
engine -> async_sessionmaker -> TransactionCoordinator -> services.
Nothing below this module reaches for a global ledger handle.
"""

from typing import Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from railbook.core.config import Settings, get_settings
from railbook.db.transaction import TransactionCoordinator


def build_engine(settings: Optional[Settings] = None, url: Optional[str] = None) -> AsyncEngine:
    """Create the async engine. Pool sizing only applies to server databases."""
    settings = settings or get_settings()
    url = url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=settings.DEBUG)

        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def build_coordinator(engine: AsyncEngine, settings: Optional[Settings] = None) -> TransactionCoordinator:
    settings = settings or get_settings()
    isolation_level = None if engine.dialect.name == "sqlite" else settings.DB_ISOLATION_LEVEL
    return TransactionCoordinator(build_sessionmaker(engine), isolation_level=isolation_level)


def get_coordinator(request: Request) -> TransactionCoordinator:
    """FastAPI dependency: the coordinator created in the application lifespan."""
    return request.app.state.coordinator


"""
Pytest fixtures for the ledger, services and HTTP client.

Each test gets a fresh SQLite database file (aiosqlite) with the schema
created from the ORM metadata, so tests never share pool state.
"""

import itertools
import os
from typing import AsyncGenerator, Optional

# Must be set before railbook reads its settings
os.environ["REDIS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine

from railbook.main import app
from railbook.core.capacity import FIXED_TIER_CATEGORY, SeatCategory, Tier
from railbook.db.base import Base
from railbook.db.session import build_engine, build_coordinator, get_coordinator
from railbook.db.transaction import TransactionCoordinator
from railbook.services.reservation_service import ReservationService


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a throwaway database, dispose the engine afterwards."""
    engine = build_engine(url=f"sqlite+aiosqlite:///{tmp_path / 'railbook_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def coordinator(engine: AsyncEngine) -> TransactionCoordinator:
    return build_coordinator(engine)


@pytest_asyncio.fixture
async def service(coordinator: TransactionCoordinator) -> ReservationService:
    return ReservationService(coordinator)


@pytest_asyncio.fixture
async def client(coordinator: TransactionCoordinator) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test coordinator."""
    app.dependency_overrides[get_coordinator] = lambda: coordinator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seed(coordinator: TransactionCoordinator):
    """
    Insert reservations straight into a tier, bypassing the allocation rules.

        ids = await seed(Tier.CNF, 18, SeatCategory.MIDDLE)
    """
    counter = itertools.count(1)

    async def _seed(tier: Tier, count: int, category: Optional[SeatCategory] = None) -> list[int]:
        category = category or FIXED_TIER_CATEGORY[tier]
        ids = []
        async with coordinator.transaction("seed") as ledger:
            for _ in range(count):
                reservation = await ledger.add_reservation(
                    f"seed-{tier.value}-{next(counter)}", 30, "male", tier, category
                )
                ids.append(reservation.id)
        return ids

    return _seed


@pytest_asyncio.fixture
async def full_cnf(seed) -> None:
    """All 63 confirmed berths taken, category by category."""
    await seed(Tier.CNF, 18, SeatCategory.LOWER)
    await seed(Tier.CNF, 18, SeatCategory.MIDDLE)
    await seed(Tier.CNF, 18, SeatCategory.UPPER)
    await seed(Tier.CNF, 9, SeatCategory.SIDE_UPPER)


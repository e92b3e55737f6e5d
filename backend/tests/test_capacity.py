"""
Tests for the capacity inspector and the availability snapshot.
"""

import pytest

from railbook.core.capacity import Gender, SeatCategory, Tier
from railbook.core.exceptions import ReadFailure
from railbook.db.base import Base
from railbook.db.ledger import LedgerGateway
from railbook.services.capacity_service import CapacityInspector


@pytest.mark.asyncio
async def test_empty_pool_availability(service):
    availability = await service.get_availability()
    assert availability == {
        "CNF": {
            "total": 63,
            "remaining": 63,
            "categories": {"lower": 18, "middle": 18, "upper": 18, "sideUpper": 9},
        },
        "RAC": {"total": 18, "remaining": 18},
        "WAIT": {"total": 10, "remaining": 10},
    }


@pytest.mark.asyncio
async def test_availability_tracks_bookings(service, seed):
    await seed(Tier.CNF, 2, SeatCategory.UPPER)
    await seed(Tier.RAC, 3)
    await service.book("Old", 80, Gender.OTHER)

    availability = await service.get_availability()
    assert availability["CNF"]["remaining"] == 60
    assert availability["CNF"]["categories"]["upper"] == 16
    assert availability["CNF"]["categories"]["lower"] == 17
    assert availability["RAC"]["remaining"] == 15
    assert availability["WAIT"]["remaining"] == 10


@pytest.mark.asyncio
async def test_occupancy_by_tier_and_category(coordinator, seed):
    await seed(Tier.CNF, 4, SeatCategory.SIDE_UPPER)
    await seed(Tier.WAIT, 2)

    async with coordinator.reader() as ledger:
        inspector = CapacityInspector(ledger)
        assert await inspector.occupancy(Tier.CNF) == 4
        assert await inspector.occupancy(Tier.RAC) == 0
        assert await inspector.occupancy(Tier.WAIT) == 2
        assert await inspector.occupancy(SeatCategory.SIDE_UPPER) == 4
        assert await inspector.occupancy(SeatCategory.LOWER) == 0


@pytest.mark.asyncio
async def test_occupancy_rejects_non_cnf_category(coordinator):
    async with coordinator.reader() as ledger:
        with pytest.raises(ValueError):
            await CapacityInspector(ledger).occupancy(SeatCategory.SIDE_LOWER)


@pytest.mark.asyncio
async def test_unreadable_ledger_is_read_failure_not_zero(service, engine):
    """A broken ledger must not look like an empty pool."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    with pytest.raises(ReadFailure) as exc_info:
        await service.get_availability()

    assert exc_info.value.operation == "occupancy_counts"
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_availability_totals_agree_when_booking_commits_mid_read(service, monkeypatch):
    """Tier and category counts come from the same committed state."""
    read_counts = LedgerGateway.occupancy_counts
    state = {"booked": False}

    async def book_then_read(self):
        if not state["booked"]:
            state["booked"] = True
            await service.book("Interleaved", 30, Gender.MALE)
        return await read_counts(self)

    monkeypatch.setattr(LedgerGateway, "occupancy_counts", book_then_read)

    availability = await service.get_availability()

    cnf = availability["CNF"]
    assert cnf["remaining"] == sum(cnf["categories"].values())
    assert cnf["remaining"] == 62
    assert cnf["categories"]["middle"] == 17


@pytest.mark.asyncio
async def test_snapshot_groups_counts_by_tier_and_category(coordinator, seed):
    await seed(Tier.CNF, 3, SeatCategory.LOWER)
    await seed(Tier.CNF, 1, SeatCategory.SIDE_UPPER)
    await seed(Tier.RAC, 2)

    async with coordinator.reader() as ledger:
        counts = await ledger.occupancy_counts()
        snapshot = await CapacityInspector(ledger).snapshot()

    assert counts == {
        (Tier.CNF, SeatCategory.LOWER): 3,
        (Tier.CNF, SeatCategory.SIDE_UPPER): 1,
        (Tier.RAC, SeatCategory.SIDE_LOWER): 2,
    }
    assert snapshot.tiers == {Tier.CNF: 4, Tier.RAC: 2, Tier.WAIT: 0}
    assert snapshot.categories == {
        SeatCategory.LOWER: 3,
        SeatCategory.MIDDLE: 0,
        SeatCategory.UPPER: 0,
        SeatCategory.SIDE_UPPER: 1,
    }

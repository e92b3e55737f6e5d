"""
Tests for cancellation and the promotion cascade.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from railbook.core.capacity import Gender, SeatCategory, Tier
from railbook.core.exceptions import NotFound, TransactionAborted
from railbook.db.ledger import LedgerGateway
from railbook.models import Dependent, Reservation
from railbook.services.promotion_service import Promotion
from helpers import count_rows, fetch


async def set_admitted_at(coordinator, reservation_id: int, admitted_at: datetime) -> None:
    async with coordinator.transaction("backdate") as ledger:
        await ledger.session.execute(
            update(Reservation)
            .where(Reservation.id == reservation_id)
            .values(admitted_at=admitted_at)
        )


async def tier_of(coordinator, reservation_id: int):
    reservation = await fetch(coordinator, reservation_id)
    return Tier(reservation.status), SeatCategory(reservation.seat_category)


@pytest.mark.asyncio
async def test_cancel_confirmed_promotes_rac_and_waitlist(service, coordinator, seed):
    """R1 (CNF/middle) cancelled: R2 takes the middle berth, R3 moves up to RAC."""
    r1 = (await service.book("R1", 30, Gender.MALE, [("Son", 3)])).reservation_id
    [r2] = await seed(Tier.RAC, 1)
    [r3] = await seed(Tier.WAIT, 1)

    promotions = await service.cancel(r1)

    assert promotions == [
        Promotion(r2, Tier.RAC, Tier.CNF, SeatCategory.MIDDLE),
        Promotion(r3, Tier.WAIT, Tier.RAC, SeatCategory.SIDE_LOWER),
    ]
    assert await tier_of(coordinator, r2) == (Tier.CNF, SeatCategory.MIDDLE)
    assert await tier_of(coordinator, r3) == (Tier.RAC, SeatCategory.SIDE_LOWER)
    assert await fetch(coordinator, r1) is None
    assert await count_rows(coordinator, Dependent) == 0


@pytest.mark.asyncio
async def test_promoted_rac_reuses_cancelled_seat_category(service, coordinator, seed):
    [side_upper] = await seed(Tier.CNF, 1, SeatCategory.SIDE_UPPER)
    [rac] = await seed(Tier.RAC, 1)

    await service.cancel(side_upper)

    assert await tier_of(coordinator, rac) == (Tier.CNF, SeatCategory.SIDE_UPPER)


@pytest.mark.asyncio
async def test_oldest_rac_promoted_first(service, coordinator, seed):
    [cnf] = await seed(Tier.CNF, 1, SeatCategory.UPPER)
    newer, older = await seed(Tier.RAC, 2)
    now = datetime.now(timezone.utc)
    await set_admitted_at(coordinator, newer, now)
    await set_admitted_at(coordinator, older, now - timedelta(minutes=5))

    promotions = await service.cancel(cnf)

    assert promotions[0].reservation_id == older
    assert (await tier_of(coordinator, newer))[0] == Tier.RAC


@pytest.mark.asyncio
async def test_admission_tie_broken_by_id(service, coordinator, seed):
    [cnf] = await seed(Tier.CNF, 1, SeatCategory.UPPER)
    first, second = await seed(Tier.RAC, 2)
    same_instant = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    await set_admitted_at(coordinator, first, same_instant)
    await set_admitted_at(coordinator, second, same_instant)

    promotions = await service.cancel(cnf)

    assert promotions[0].reservation_id == first


@pytest.mark.asyncio
async def test_cascade_moves_exactly_one_of_each(service, coordinator, seed):
    [cnf] = await seed(Tier.CNF, 1, SeatCategory.LOWER)
    rac_ids = await seed(Tier.RAC, 3)
    wait_ids = await seed(Tier.WAIT, 3)

    promotions = await service.cancel(cnf)

    assert [(p.from_tier, p.to_tier) for p in promotions] == [
        (Tier.RAC, Tier.CNF),
        (Tier.WAIT, Tier.RAC),
    ]
    assert [(await tier_of(coordinator, i))[0] for i in rac_ids] == [Tier.CNF, Tier.RAC, Tier.RAC]
    assert [(await tier_of(coordinator, i))[0] for i in wait_ids] == [Tier.RAC, Tier.WAIT, Tier.WAIT]


@pytest.mark.asyncio
async def test_cancel_rac_promotes_oldest_waitlisted(service, coordinator, seed):
    [rac] = await seed(Tier.RAC, 1)
    first_wait, second_wait = await seed(Tier.WAIT, 2)

    promotions = await service.cancel(rac)

    assert promotions == [Promotion(first_wait, Tier.WAIT, Tier.RAC, SeatCategory.SIDE_LOWER)]
    assert (await tier_of(coordinator, second_wait))[0] == Tier.WAIT


@pytest.mark.asyncio
async def test_cancel_rac_with_empty_waitlist_is_noop(service, coordinator, seed):
    rac, other = await seed(Tier.RAC, 2)

    assert await service.cancel(rac) == []
    assert await tier_of(coordinator, other) == (Tier.RAC, SeatCategory.SIDE_LOWER)


@pytest.mark.asyncio
async def test_cancel_waitlisted_has_no_cascade(service, coordinator, seed):
    [rac] = await seed(Tier.RAC, 1)
    waiting, behind = await seed(Tier.WAIT, 2)

    assert await service.cancel(waiting) == []
    assert (await tier_of(coordinator, rac))[0] == Tier.RAC
    assert (await tier_of(coordinator, behind))[0] == Tier.WAIT


@pytest.mark.asyncio
async def test_cancel_confirmed_without_rac_still_promotes_waitlist(service, coordinator, seed):
    """Both cascade steps run even when the first finds no candidate."""
    [cnf] = await seed(Tier.CNF, 1, SeatCategory.MIDDLE)
    [waiting] = await seed(Tier.WAIT, 1)

    promotions = await service.cancel(cnf)

    assert promotions == [Promotion(waiting, Tier.WAIT, Tier.RAC, SeatCategory.SIDE_LOWER)]


@pytest.mark.asyncio
async def test_cancel_unknown_id_is_not_found_and_mutates_nothing(service, coordinator, seed):
    await seed(Tier.RAC, 1)
    await seed(Tier.WAIT, 1)
    before = await service.get_availability()

    with pytest.raises(NotFound):
        await service.cancel(9999)

    assert await service.get_availability() == before
    assert await count_rows(coordinator, Reservation) == 2


@pytest.mark.asyncio
async def test_cancel_failure_rolls_back_promotions(service, coordinator, seed, monkeypatch):
    """Promotion is never committed if the deletion it precedes fails."""
    [cnf] = await seed(Tier.CNF, 1, SeatCategory.MIDDLE)
    [rac] = await seed(Tier.RAC, 1)

    async def failing_delete(self, reservation):
        raise SQLAlchemyError("simulated delete failure")

    monkeypatch.setattr(LedgerGateway, "delete", failing_delete)

    with pytest.raises(TransactionAborted):
        await service.cancel(cnf)

    assert await tier_of(coordinator, cnf) == (Tier.CNF, SeatCategory.MIDDLE)
    assert await tier_of(coordinator, rac) == (Tier.RAC, SeatCategory.SIDE_LOWER)


@pytest.mark.asyncio
async def test_freed_capacity_is_reused_by_next_booking(service, seed, full_cnf):
    [rac] = await seed(Tier.RAC, 1)
    booked = await service.book("Late", 30, Gender.MALE)
    assert booked.tier == Tier.RAC

    await service.cancel(rac)
    availability = await service.get_availability()
    assert availability["CNF"]["remaining"] == 0
    assert availability["RAC"]["remaining"] == 17

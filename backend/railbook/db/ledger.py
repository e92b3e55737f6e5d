"""
Ledger gateway: the only module that knows how reservations are stored.

Every read and write the engines need is a typed, parameterised method here.
Reads distinguish "no rows" (None / 0 / empty list) from "could not read"
(ReadFailure). Writes let SQLAlchemy errors propagate so the enclosing
transaction scope can roll back and report TransactionAborted.
"""

import functools
from typing import Optional, Sequence

from sqlalchemy import select, func, exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from railbook.core.capacity import Tier, SeatCategory
from railbook.core.exceptions import ReadFailure
from railbook.core.logging import get_logger
from railbook.core.metrics import record_read_failure
from railbook.models import Reservation, Dependent

logger = get_logger(__name__)


def ledger_read(operation: str):
    """Turn storage errors raised by a read into ReadFailure, logged with its arguments."""

    def decorator(func_):
        @functools.wraps(func_)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func_(self, *args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(
                    "ledger_read_failed",
                    operation=operation,
                    args=[str(a) for a in args],
                    error_type=type(e).__name__,
                )
                record_read_failure(operation)
                raise ReadFailure(operation) from e

        return wrapper

    return decorator


class LedgerGateway:
    """Typed operations over one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Reads

    @ledger_read("get_reservation")
    async def get_reservation(self, reservation_id: int) -> Optional[Reservation]:
        result = await self.session.execute(
            select(Reservation).where(Reservation.id == reservation_id)
        )
        return result.scalar_one_or_none()

    @ledger_read("holder_exists")
    async def holder_exists(self, holder_name: str) -> bool:
        result = await self.session.execute(
            select(exists().where(Reservation.holder_name == holder_name))
        )
        return bool(result.scalar())

    @ledger_read("count_tier")
    async def count_tier(self, tier: Tier) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Reservation).where(Reservation.status == tier.value)
        )
        return result.scalar_one()

    @ledger_read("count_cnf_category")
    async def count_cnf_category(self, category: SeatCategory) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Reservation)
            .where(
                Reservation.status == Tier.CNF.value,
                Reservation.seat_category == category.value,
            )
        )
        return result.scalar_one()

    @ledger_read("occupancy_counts")
    async def occupancy_counts(self) -> dict[tuple[Tier, SeatCategory], int]:
        """
        Reservations per (tier, seat category) pair, from a single statement.

        One GROUP BY keeps tier and category totals consistent with each other
        even when a booking commits while the read is in flight.
        """
        result = await self.session.execute(
            select(Reservation.status, Reservation.seat_category, func.count())
            .group_by(Reservation.status, Reservation.seat_category)
        )
        return {
            (Tier(status), SeatCategory(category)): count
            for status, category, count in result.all()
        }

    @ledger_read("oldest_in_tier")
    async def oldest_in_tier(self, tier: Tier) -> Optional[Reservation]:
        """Earliest-admitted reservation in a tier; id breaks timestamp ties."""
        result = await self.session.execute(
            select(Reservation)
            .where(Reservation.status == tier.value)
            .order_by(Reservation.admitted_at.asc(), Reservation.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @ledger_read("list_reservations")
    async def list_reservations(self) -> list[Reservation]:
        result = await self.session.execute(
            select(Reservation).order_by(Reservation.admitted_at.asc(), Reservation.id.asc())
        )
        return list(result.scalars().all())

    # Writes

    async def add_reservation(
        self,
        holder_name: str,
        holder_age: int,
        holder_gender: str,
        tier: Tier,
        category: SeatCategory,
        dependents: Sequence[tuple[str, int]] = (),
    ) -> Reservation:
        """Insert a reservation, already placed in its tier, with its dependents."""
        reservation = Reservation(
            holder_name=holder_name,
            holder_age=holder_age,
            holder_gender=holder_gender,
            status=tier.value,
            seat_category=category.value,
            dependents=[Dependent(name=name, age=age) for name, age in dependents],
        )
        self.session.add(reservation)
        await self.session.flush()
        await self.session.refresh(reservation, attribute_names=["admitted_at"])
        return reservation

    async def assign(self, reservation: Reservation, tier: Tier, category: SeatCategory) -> None:
        """Move a reservation to another tier; tier and seat category change together."""
        reservation.status = tier.value
        reservation.seat_category = category.value
        await self.session.flush()

    async def delete(self, reservation: Reservation) -> None:
        """Delete a reservation; its dependents go with it."""
        await self.session.delete(reservation)
        await self.session.flush()

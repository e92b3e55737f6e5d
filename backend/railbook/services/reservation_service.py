"""
Reservation service: the operations the HTTP layer calls.

    get_availability()   capacity inspector on a reader scope
    book(...)            allocation engine
    cancel(id)           lookup -> promotion cascade -> delete, one transaction
    list_reservations()  reader scope, oldest first, dependents included

The service holds no state of its own; the coordinator it is built with
owns the session factory and the writer lock.
"""

from typing import Iterable

from railbook.core.capacity import Gender, Tier
from railbook.core.exceptions import NotFound
from railbook.core.logging import get_logger
from railbook.core.metrics import record_cancellation, record_promotion
from railbook.db.transaction import TransactionCoordinator
from railbook.models import Reservation
from railbook.services.allocation_service import Allocation, AllocationEngine, BookingRequest
from railbook.services.capacity_service import CapacityInspector
from railbook.services.promotion_service import Promotion, PromotionEngine

logger = get_logger(__name__)


class ReservationService:
    def __init__(self, coordinator: TransactionCoordinator):
        self.coordinator = coordinator
        self.allocator = AllocationEngine(coordinator)

    async def get_availability(self) -> dict:
        async with self.coordinator.reader() as ledger:
            return await CapacityInspector(ledger).availability()

    async def book(
        self,
        holder_name: str,
        holder_age: int,
        holder_gender: Gender,
        dependents: Iterable[tuple[str, int]] = (),
    ) -> Allocation:
        request = BookingRequest(
            holder_name=holder_name,
            holder_age=holder_age,
            holder_gender=Gender(holder_gender),
            dependents=tuple(dependents),
        )
        return await self.allocator.allocate(request)

    async def cancel(self, reservation_id: int) -> list[Promotion]:
        """
        Cancel a reservation and promote whoever its seat now belongs to.
        Raises NotFound for an unknown id, in which case nothing changes.
        """
        async with self.coordinator.transaction("cancel", reservation_id=reservation_id) as ledger:
            reservation = await ledger.get_reservation(reservation_id)
            if reservation is None:
                raise NotFound(reservation_id)

            prior_tier = Tier(reservation.status)
            prior_category = reservation.seat_category
            dependents = len(reservation.dependents)

            promotions = await PromotionEngine(ledger).on_cancel(reservation)
            await ledger.delete(reservation)

        logger.info(
            "reservation_cancelled",
            reservation_id=reservation_id,
            tier=prior_tier.value,
            seat_category=prior_category,
            dependents_removed=dependents,
            promotions=len(promotions),
        )
        record_cancellation(prior_tier.value)
        for promotion in promotions:
            logger.info(
                "reservation_promoted",
                reservation_id=promotion.reservation_id,
                from_tier=promotion.from_tier.value,
                to_tier=promotion.to_tier.value,
                seat_category=promotion.seat_category.value,
                vacated_by=reservation_id,
            )
            record_promotion(promotion.from_tier.value, promotion.to_tier.value)
        return promotions

    async def list_reservations(self) -> list[Reservation]:
        async with self.coordinator.reader() as ledger:
            return await ledger.list_reservations()

"""
Allocation engine: decides the tier and seat category for a new booking
and persists it.

ADMISSION RULES
===============

Tier, first match wins:
  CNF   if fewer than 63 confirmed
  RAC   if fewer than 18 RAC           -> seat sideLower
  WAIT  if fewer than 10 waitlisted    -> no seat
  otherwise the booking is rejected (CapacityExhausted)

CNF seat category, first match wins:
  lower      if the holder has priority and lower < 18
  middle     if middle < 18
  upper      if upper < 18
  sideUpper  if sideUpper < 9
  lower      fallback, even when lower is already full

Priority means a woman travelling with dependents, or anyone over 60.

The fallback cannot overflow from a state built by these engines alone
(the four categories add up to exactly 63), but it is kept and logged as
`seat_category_overflow` rather than silently rerouted.

Everything from the duplicate check to the final write runs in one
transaction scope, so concurrent bookings never decide on the same counts.
"""

from dataclasses import dataclass, field

from railbook.core.capacity import (
    CNF_CATEGORY_CAPACITY,
    FIXED_TIER_CATEGORY,
    PRIORITY_AGE_THRESHOLD,
    TIER_CAPACITY,
    Gender,
    SeatCategory,
    Tier,
)
from railbook.core.exceptions import CapacityExhausted, DuplicateBooking, TransactionAborted
from railbook.core.logging import get_logger
from railbook.core.metrics import record_booking_attempt
from railbook.db.transaction import TransactionCoordinator
from railbook.services.capacity_service import CapacityInspector

logger = get_logger(__name__)

# Order in which CNF categories are offered after the priority check
_CATEGORY_ORDER = (
    SeatCategory.MIDDLE,
    SeatCategory.UPPER,
    SeatCategory.SIDE_UPPER,
)


@dataclass(frozen=True)
class BookingRequest:
    holder_name: str
    holder_age: int
    holder_gender: Gender
    dependents: tuple[tuple[str, int], ...] = field(default_factory=tuple)

    @property
    def has_priority(self) -> bool:
        travelling_mother = self.holder_gender == Gender.FEMALE and len(self.dependents) > 0
        return travelling_mother or self.holder_age > PRIORITY_AGE_THRESHOLD


@dataclass(frozen=True)
class Allocation:
    reservation_id: int
    tier: Tier
    seat_category: SeatCategory


def choose_tier(tiers: dict[Tier, int]) -> Tier:
    for tier in Tier:
        if tiers[tier] < TIER_CAPACITY[tier]:
            return tier
    raise CapacityExhausted()


def choose_seat_category(categories: dict[SeatCategory, int], priority: bool) -> SeatCategory:
    if priority and categories[SeatCategory.LOWER] < CNF_CATEGORY_CAPACITY[SeatCategory.LOWER]:
        return SeatCategory.LOWER
    for category in _CATEGORY_ORDER:
        if categories[category] < CNF_CATEGORY_CAPACITY[category]:
            return category
    if categories[SeatCategory.LOWER] >= CNF_CATEGORY_CAPACITY[SeatCategory.LOWER]:
        logger.warning("seat_category_overflow", category=SeatCategory.LOWER.value, occupancy=categories)
    return SeatCategory.LOWER


class AllocationEngine:
    def __init__(self, coordinator: TransactionCoordinator):
        self.coordinator = coordinator

    async def allocate(self, request: BookingRequest) -> Allocation:
        """
        Admit a booking.

        Raises DuplicateBooking, CapacityExhausted, or TransactionAborted;
        in every error case nothing is written.
        """
        try:
            async with self.coordinator.transaction("allocate", holder_name=request.holder_name) as ledger:
                if await ledger.holder_exists(request.holder_name):
                    raise DuplicateBooking(request.holder_name)

                occupancy = await CapacityInspector(ledger).snapshot()
                tier = choose_tier(occupancy.tiers)

                if tier == Tier.CNF:
                    category = choose_seat_category(occupancy.categories, request.has_priority)
                else:
                    category = FIXED_TIER_CATEGORY[tier]

                reservation = await ledger.add_reservation(
                    request.holder_name,
                    request.holder_age,
                    request.holder_gender.value,
                    tier,
                    category,
                    request.dependents,
                )
                reservation_id = reservation.id
        except DuplicateBooking:
            logger.warning("booking_rejected", reason="duplicate", holder_name=request.holder_name)
            record_booking_attempt("duplicate")
            raise
        except CapacityExhausted:
            logger.warning("booking_rejected", reason="capacity_exhausted", holder_name=request.holder_name)
            record_booking_attempt("exhausted")
            raise
        except TransactionAborted:
            record_booking_attempt("error")
            raise

        logger.info(
            "reservation_allocated",
            reservation_id=reservation_id,
            holder_name=request.holder_name,
            tier=tier.value,
            seat_category=category.value,
            priority=request.has_priority,
            dependents=len(request.dependents),
        )
        record_booking_attempt(tier.value)
        return Allocation(reservation_id=reservation_id, tier=tier, seat_category=category)

"""
Fixed capacity of the reservation pool.

The pool is static: one train, one journey. Capacities are deliberately
constants rather than settings, since every invariant in the allocation and
promotion engines is written against these numbers.

    CNF  (confirmed)                     63 = lower 18 + middle 18 + upper 18 + sideUpper 9
    RAC  (reservation against cancel)    18, always sideLower
    WAIT (waitlist)                      10, no seat
"""

import enum


class Tier(str, enum.Enum):
    """Reservation tiers, highest priority first."""

    CNF = "CNF"
    RAC = "RAC"
    WAIT = "WAIT"


class SeatCategory(str, enum.Enum):
    LOWER = "lower"
    MIDDLE = "middle"
    UPPER = "upper"
    SIDE_UPPER = "sideUpper"
    SIDE_LOWER = "sideLower"
    NONE = "none"


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


TIER_CAPACITY: dict[Tier, int] = {
    Tier.CNF: 63,
    Tier.RAC: 18,
    Tier.WAIT: 10,
}

# Sub-allocation of the CNF tier, in the order seats are handed out
# to non-priority holders (lower is reserved for priority holders first).
CNF_CATEGORY_CAPACITY: dict[SeatCategory, int] = {
    SeatCategory.LOWER: 18,
    SeatCategory.MIDDLE: 18,
    SeatCategory.UPPER: 18,
    SeatCategory.SIDE_UPPER: 9,
}

CNF_SEAT_CATEGORIES = tuple(CNF_CATEGORY_CAPACITY)

# Seat category implied by a non-CNF tier
FIXED_TIER_CATEGORY: dict[Tier, SeatCategory] = {
    Tier.RAC: SeatCategory.SIDE_LOWER,
    Tier.WAIT: SeatCategory.NONE,
}

PRIORITY_AGE_THRESHOLD = 60


def category_matches_tier(tier: Tier, category: SeatCategory) -> bool:
    """Check the status/seat-category coupling that every committed row must satisfy."""
    if tier == Tier.CNF:
        return category in CNF_CATEGORY_CAPACITY
    return FIXED_TIER_CATEGORY[tier] == category

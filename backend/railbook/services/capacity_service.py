"""
Capacity inspector: current occupancy of the pool, per tier and per CNF
seat category.

All counts come from the ledger at call time. Run it inside a transaction
scope when the numbers feed a write decision. A snapshot is read with one
statement, so its tier and category totals always describe the same
committed state.

A failed read raises ReadFailure. Zero is only ever returned for a tier or
category that really is empty.
"""

from dataclasses import dataclass
from typing import Union

from railbook.core.capacity import (
    CNF_CATEGORY_CAPACITY,
    CNF_SEAT_CATEGORIES,
    TIER_CAPACITY,
    SeatCategory,
    Tier,
)
from railbook.core.metrics import record_occupancy
from railbook.db.ledger import LedgerGateway


@dataclass(frozen=True)
class Occupancy:
    tiers: dict[Tier, int]
    categories: dict[SeatCategory, int]


class CapacityInspector:
    def __init__(self, ledger: LedgerGateway):
        self.ledger = ledger

    async def occupancy(self, target: Union[Tier, SeatCategory]) -> int:
        """
        Count reservations in a tier, or CNF reservations in a seat category.

        Only the four CNF categories can be counted by category; RAC and WAIT
        seats are implied by their tier.
        """
        if isinstance(target, Tier):
            return await self.ledger.count_tier(target)
        if target not in CNF_CATEGORY_CAPACITY:
            raise ValueError(f"{target.value} is not a CNF seat category")
        return await self.ledger.count_cnf_category(target)

    async def snapshot(self) -> Occupancy:
        counts = await self.ledger.occupancy_counts()
        tiers = {tier: 0 for tier in Tier}
        categories = {category: 0 for category in CNF_SEAT_CATEGORIES}
        for (tier, category), count in counts.items():
            tiers[tier] += count
            if tier == Tier.CNF:
                categories[category] += count
        return Occupancy(tiers=tiers, categories=categories)

    async def availability(self) -> dict:
        """Totals and remaining seats, shaped for the availability endpoint."""
        snapshot = await self.snapshot()
        for tier, count in snapshot.tiers.items():
            record_occupancy(tier.value, count)
        return build_availability(snapshot)


def build_availability(snapshot: Occupancy) -> dict:
    def tier_entry(tier: Tier) -> dict:
        return {
            "total": TIER_CAPACITY[tier],
            "remaining": TIER_CAPACITY[tier] - snapshot.tiers[tier],
        }

    return {
        Tier.CNF.value: {
            **tier_entry(Tier.CNF),
            "categories": {
                category.value: capacity - snapshot.categories[category]
                for category, capacity in CNF_CATEGORY_CAPACITY.items()
            },
        },
        Tier.RAC.value: tier_entry(Tier.RAC),
        Tier.WAIT.value: tier_entry(Tier.WAIT),
    }

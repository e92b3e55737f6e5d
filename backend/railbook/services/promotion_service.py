"""
Promotion engine: moves vacated capacity down the tiers after a cancellation.

    cancelled CNF  ->  oldest RAC  -> CNF (takes the cancelled seat category)
                       oldest WAIT -> RAC (sideLower)
    cancelled RAC  ->  oldest WAIT -> RAC (sideLower)
    cancelled WAIT ->  nothing

The cascade is exactly one level deep per step: at most one RAC->CNF and
one WAIT->RAC per cancellation. Both steps of a CNF cancellation run even
when the first finds nobody to promote.

"Oldest" is the smallest (admitted_at, id). Runs on the caller's ledger,
inside the same transaction as the deletion it precedes.
"""

from dataclasses import dataclass
from typing import Optional

from railbook.core.capacity import FIXED_TIER_CATEGORY, SeatCategory, Tier
from railbook.core.logging import get_logger
from railbook.db.ledger import LedgerGateway
from railbook.models import Reservation

logger = get_logger(__name__)

# prior tier of the cancelled reservation -> (source tier, target tier) steps
CASCADE: dict[Tier, tuple[tuple[Tier, Tier], ...]] = {
    Tier.CNF: ((Tier.RAC, Tier.CNF), (Tier.WAIT, Tier.RAC)),
    Tier.RAC: ((Tier.WAIT, Tier.RAC),),
    Tier.WAIT: (),
}


@dataclass(frozen=True)
class Promotion:
    reservation_id: int
    from_tier: Tier
    to_tier: Tier
    seat_category: SeatCategory


class PromotionEngine:
    def __init__(self, ledger: LedgerGateway):
        self.ledger = ledger

    async def on_cancel(self, cancelled: Reservation) -> list[Promotion]:
        """Run the cascade for a reservation about to be deleted. Returns what moved."""
        prior = Tier(cancelled.status)
        promotions = []
        for source, target in CASCADE[prior]:
            if target == Tier.CNF:
                # The vacated berth is handed over as-is, not recomputed
                category = SeatCategory(cancelled.seat_category)
            else:
                category = FIXED_TIER_CATEGORY[target]
            promotion = await self._promote_oldest(source, target, category)
            if promotion is not None:
                promotions.append(promotion)
        return promotions

    async def _promote_oldest(
        self, source: Tier, target: Tier, category: SeatCategory
    ) -> Optional[Promotion]:
        candidate = await self.ledger.oldest_in_tier(source)
        if candidate is None:
            logger.debug("promotion_skipped", from_tier=source.value, to_tier=target.value)
            return None

        await self.ledger.assign(candidate, target, category)
        logger.debug(
            "promotion_staged",
            reservation_id=candidate.id,
            from_tier=source.value,
            to_tier=target.value,
            seat_category=category.value,
        )
        return Promotion(
            reservation_id=candidate.id,
            from_tier=source,
            to_tier=target,
            seat_category=category,
        )

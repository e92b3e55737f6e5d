"""
Pydantic schemas for the availability snapshot.
"""

from pydantic import BaseModel


class TierAvailability(BaseModel):
    total: int
    remaining: int


class ConfirmedAvailability(TierAvailability):
    # Remaining seats per CNF category: lower, middle, upper, sideUpper
    categories: dict[str, int]


class AvailabilityResponse(BaseModel):
    CNF: ConfirmedAvailability
    RAC: TierAvailability
    WAIT: TierAvailability

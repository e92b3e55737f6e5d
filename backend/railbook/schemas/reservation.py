"""
Pydantic schemas for reservation request/response validation.

BookingCreate is the inbound validator: anything that reaches the
allocation engine has already passed these rules.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from railbook.core.capacity import Gender, SeatCategory, Tier


class DependentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    age: int = Field(..., ge=0, le=5)


class BookingCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    age: int = Field(..., ge=0, le=100)
    gender: Gender
    # "children" is accepted for legacy clients
    dependents: list[DependentCreate] = Field(
        default_factory=list,
        validation_alias=AliasChoices("dependents", "children"),
    )


class AllocationResponse(BaseModel):
    reservation_id: int
    tier: Tier
    seat_category: SeatCategory

    model_config = {"from_attributes": True}


class DependentResponse(BaseModel):
    id: int
    name: str
    age: int

    model_config = {"from_attributes": True}


class ReservationResponse(BaseModel):
    id: int
    holder_name: str
    holder_age: int
    holder_gender: str
    status: Optional[Tier]
    seat_category: Optional[SeatCategory]
    admitted_at: datetime
    dependents: list[DependentResponse]

    model_config = {"from_attributes": True}


class PromotionResponse(BaseModel):
    reservation_id: int
    from_tier: Tier
    to_tier: Tier
    seat_category: SeatCategory

    model_config = {"from_attributes": True}


class CancelResponse(BaseModel):
    message: str
    reservation_id: int
    promotions: list[PromotionResponse]

from railbook.schemas.reservation import (
    BookingCreate,
    DependentCreate,
    AllocationResponse,
    ReservationResponse,
    PromotionResponse,
    CancelResponse,
)
from railbook.schemas.availability import AvailabilityResponse

__all__ = [
    "BookingCreate", "DependentCreate",
    "AllocationResponse", "ReservationResponse", "PromotionResponse", "CancelResponse",
    "AvailabilityResponse",
]

"""
Ticket endpoints: availability, booking, cancellation, and the booked list.

Request bodies are validated by the pydantic schemas before the service
runs. Domain and ledger errors are turned into responses by the handlers
in railbook.api.exception_handlers.
"""

from fastapi import APIRouter, Depends, status

from railbook.db.session import get_coordinator
from railbook.db.transaction import TransactionCoordinator
from railbook.schemas import (
    AllocationResponse,
    AvailabilityResponse,
    BookingCreate,
    CancelResponse,
    PromotionResponse,
    ReservationResponse,
)
from railbook.services.reservation_service import ReservationService
from railbook.services.cache_service import (
    get_availability_generation,
    get_cached_availability,
    set_cached_availability,
    invalidate_availability_cache,
)

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def get_reservation_service(
    coordinator: TransactionCoordinator = Depends(get_coordinator),
) -> ReservationService:
    return ReservationService(coordinator)


@router.get("/available", response_model=AvailabilityResponse)
async def get_availability(service: ReservationService = Depends(get_reservation_service)):
    """
    Seats remaining per tier and per CNF seat category.
    Served from Redis when cached; invalidated by every booking and cancellation.
    """
    cached = await get_cached_availability()
    if cached:
        return AvailabilityResponse(**cached)

    generation = await get_availability_generation()
    availability = await service.get_availability()
    await set_cached_availability(availability, generation)
    return AvailabilityResponse(**availability)


@router.post("/book", response_model=AllocationResponse, status_code=status.HTTP_201_CREATED)
async def book_ticket(
    booking_data: BookingCreate,
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Book a ticket. The holder is placed in CNF, then RAC, then WAIT,
    whichever has room first. Returns 409 for a duplicate holder name or
    when all three tiers are full.
    """
    allocation = await service.book(
        holder_name=booking_data.name,
        holder_age=booking_data.age,
        holder_gender=booking_data.gender,
        dependents=[(d.name, d.age) for d in booking_data.dependents],
    )
    await invalidate_availability_cache()
    return allocation


@router.post("/cancel/{reservation_id}", response_model=CancelResponse)
async def cancel_ticket(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
):
    """Cancel a ticket and promote the next RAC and waitlisted holders."""
    promotions = await service.cancel(reservation_id)
    await invalidate_availability_cache()
    return CancelResponse(
        message="Ticket cancelled successfully",
        reservation_id=reservation_id,
        promotions=[PromotionResponse.model_validate(p) for p in promotions],
    )


@router.get("/booked", response_model=list[ReservationResponse])
async def list_booked_tickets(service: ReservationService = Depends(get_reservation_service)):
    """All reservations with their dependents, oldest first."""
    return await service.list_reservations()

"""
Reservation error taxonomy.

Expected outcomes (duplicate booking, no capacity, unknown id) and
infrastructure faults (aborted transaction, unreadable ledger) share one
base class so the API layer can map them to responses in a single handler.
Each error carries its HTTP status code and a stable machine-readable code.

Request validation errors are raised by pydantic/FastAPI before the core
runs and are not part of this hierarchy.
"""

from fastapi import status


class ReservationError(Exception):
    code = "reservation_error"

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DuplicateBooking(ReservationError):
    code = "duplicate_booking"

    def __init__(self, holder_name: str):
        self.holder_name = holder_name
        super().__init__(
            f"A reservation already exists for {holder_name!r}",
            status.HTTP_409_CONFLICT,
        )


class CapacityExhausted(ReservationError):
    code = "capacity_exhausted"

    def __init__(self):
        super().__init__("No tickets available", status.HTTP_409_CONFLICT)


class NotFound(ReservationError):
    code = "not_found"

    def __init__(self, reservation_id: int):
        self.reservation_id = reservation_id
        super().__init__(
            f"Reservation {reservation_id} not found",
            status.HTTP_404_NOT_FOUND,
        )


class InfrastructureError(ReservationError):
    """Ledger-level fault. The message is safe to show; the cause is not."""

    def __init__(self, message: str, operation: str):
        self.operation = operation
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class TransactionAborted(InfrastructureError):
    code = "transaction_aborted"

    def __init__(self, operation: str):
        super().__init__(
            "The reservation ledger could not complete the request. No changes were made.",
            operation,
        )


class ReadFailure(InfrastructureError):
    code = "read_failure"

    def __init__(self, operation: str):
        super().__init__("The reservation ledger is currently unreadable.", operation)


# Outcomes a transaction scope re-raises untouched after rolling back
DOMAIN_OUTCOMES = (DuplicateBooking, CapacityExhausted, NotFound)

"""
Maps the reservation error taxonomy to HTTP responses.

Expected outcomes (409, 404) are logged at warning level. Ledger faults
(503) are logged at error level; the client only sees the safe message
carried by the exception, never the underlying storage error.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from railbook.core.exceptions import InfrastructureError, ReservationError
from railbook.core.logging import get_logger

logger = get_logger(__name__)


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    if isinstance(exc, InfrastructureError):
        logger.error("ledger_unavailable", code=exc.code, operation=exc.operation)
    else:
        logger.warning("request_rejected", code=exc.code, detail=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error": "internal_error"},
    )


EXCEPTION_HANDLERS = {
    ReservationError: reservation_error_handler,
    Exception: unhandled_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)

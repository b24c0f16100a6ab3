"""Map core errors to HTTP responses."""

from fastapi import Request
from fastapi.responses import JSONResponse

from rentaly.domain.errors import (
    IntervalConflictError,
    InvalidIntervalError,
    InvalidTransitionError,
    PastStartDateError,
    RentalyError,
    ReservationNotFoundError,
    ResourceNotFoundError,
    ResourceUnavailableError,
    StoreUnavailableError,
)
from rentaly.observability.logging import get_logger

logger = get_logger(__name__)

_STATUS_CODES: dict[type[RentalyError], int] = {
    InvalidIntervalError: 400,
    PastStartDateError: 400,
    ResourceUnavailableError: 400,
    InvalidTransitionError: 400,
    ResourceNotFoundError: 404,
    ReservationNotFoundError: 404,
    IntervalConflictError: 409,
    StoreUnavailableError: 503,
}


def status_code_for(exc: RentalyError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_CODES:
            return _STATUS_CODES[cls]
    return 500


async def rentaly_error_handler(request: Request, exc: RentalyError) -> JSONResponse:
    """Render a core error as {"error", "message", "details"}."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(
            "request failed",
            extra={
                "extra_fields": {
                    "path": request.url.path,
                    "error": exc.kind,
                    "status_code": status_code,
                }
            },
        )
    headers = {"Retry-After": "1"} if isinstance(exc, StoreUnavailableError) else None
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)

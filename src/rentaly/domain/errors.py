"""Error taxonomy for the reservation core.

Business rejections derive from ReservationRejected and carry a stable
`kind` plus structured `details`, enough for a caller to render an
actionable message. StoreUnavailableError sits outside that
branch: it reports a persistence failure, not a decision.
"""

from __future__ import annotations

from datetime import date
from typing import Any


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


class RentalyError(Exception):
    """Base class for all errors raised by the core."""

    kind = "error"

    def __init__(self, message: str, **details: Any) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, "details": dict(self.details)}


class ReservationRejected(RentalyError):
    """A business rule refused the request. Never retried by the core."""


class InvalidIntervalError(ReservationRejected):
    """Raised when a date range is malformed (start >= end, unparsable)."""

    kind = "invalid_interval"

    def __init__(self, message: str = "start must be before end", **details: Any) -> None:
        super().__init__(message, **details)


class PastStartDateError(ReservationRejected):
    kind = "past_start_date"

    def __init__(self, start: date, now: date) -> None:
        super().__init__(
            "Start date cannot be in the past",
            start=_iso(start),
            now=_iso(now),
        )


class ResourceNotFoundError(ReservationRejected):
    kind = "resource_not_found"

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(f"Resource {resource_id} not found", resource_id=resource_id)


class ResourceUnavailableError(ReservationRejected):
    """Raised when the resource is flagged as not bookable."""

    kind = "resource_unavailable"

    def __init__(self, resource_id: str, label: str | None = None) -> None:
        self.resource_id = resource_id
        name = label or f"Resource {resource_id}"
        super().__init__(
            f"{name} is currently not available for booking",
            resource_id=resource_id,
        )


class IntervalConflictError(ReservationRejected):
    """Raised when the resource already has an overlapping active reservation."""

    kind = "interval_conflict"

    def __init__(
        self,
        resource_id: str,
        conflicting_reservation_id: str,
        existing_start: date | None,
        existing_end: date | None,
        existing_status: str | None = None,
    ) -> None:
        self.resource_id = resource_id
        self.conflicting_reservation_id = conflicting_reservation_id
        self.existing_start = existing_start
        self.existing_end = existing_end
        if existing_start is not None and existing_end is not None:
            message = (
                f"Resource {resource_id} has an existing {existing_status or 'active'} "
                f"reservation from {existing_start.isoformat()} to {existing_end.isoformat()}"
            )
        else:
            message = f"Resource {resource_id} has an overlapping reservation"
        super().__init__(
            message,
            resource_id=resource_id,
            conflicting_reservation_id=conflicting_reservation_id,
            existing_start=_iso(existing_start),
            existing_end=_iso(existing_end),
            existing_status=existing_status,
        )


class InvalidTransitionError(ReservationRejected):
    kind = "invalid_transition"

    def __init__(self, reservation_id: str, current_status: str, target_status: str) -> None:
        self.reservation_id = reservation_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Reservation {reservation_id} cannot move from "
            f"'{current_status}' to '{target_status}'",
            reservation_id=reservation_id,
            current_status=current_status,
            target_status=target_status,
        )


class ReservationNotFoundError(ReservationRejected):
    kind = "reservation_not_found"

    def __init__(self, reservation_id: str) -> None:
        self.reservation_id = reservation_id
        super().__init__(
            f"Reservation {reservation_id} not found",
            reservation_id=reservation_id,
        )


class StoreUnavailableError(RentalyError):
    """Raised when the backing store cannot be reached.

    Safe to retry with backoff at the caller's discretion.
    """

    kind = "store_unavailable"

    def __init__(self, message: str = "reservation store unavailable") -> None:
        super().__init__(message)

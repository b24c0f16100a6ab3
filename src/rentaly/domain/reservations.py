"""Reservation records, query criteria and the store contract."""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol

from rentaly.domain.intervals import Interval


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


# Only these occupy capacity; completed/cancelled never block a new booking,
# even when their interval lies in the future.
ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELLED})


@dataclass(frozen=True)
class Reservation:
    id: str
    resource_id: str
    requester_id: str
    interval: Interval
    total_price: Decimal
    status: ReservationStatus
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        if self.total_price < 0:
            raise ValueError("total price must not be negative")
        if not isinstance(self.status, ReservationStatus):
            object.__setattr__(self, "status", ReservationStatus(self.status))

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "requester_id": self.requester_id,
            "start": self.interval.start.isoformat(),
            "end": self.interval.end.isoformat(),
            "days": self.interval.days,
            "total_price": str(self.total_price),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class ReservationQuery:
    """Typed query criteria; each set field adds exactly one predicate.

    Attributes:
        resource_id: Reservations of this resource.
        requester_id: Reservations made by this requester.
        statuses: Status must be one of these.
        starts_from: interval.start >= starts_from.
        starts_before: interval.start < starts_before.
        limit: Maximum rows returned, newest start first.
    """

    resource_id: str | None = None
    requester_id: str | None = None
    statuses: frozenset[ReservationStatus] = field(default_factory=frozenset)
    starts_from: date | None = None
    starts_before: date | None = None
    limit: int = 100

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "statuses",
            frozenset(ReservationStatus(s) for s in self.statuses),
        )
        if self.limit <= 0:
            raise ValueError("limit must be positive")


class ReservingSession(Protocol):
    """Store operations bound to a per-resource critical section."""

    def find_active_by_resource(self, resource_id: str) -> list[Reservation]:
        ...

    def insert(self, reservation: Reservation) -> Reservation:
        ...


class ReservationStore(Protocol):
    """Persistence contract for reservations.

    Implementations translate their driver's connectivity failures into
    StoreUnavailableError.
    """

    def find_active_by_resource(self, resource_id: str) -> list[Reservation]:
        """Active (pending/confirmed) reservations of a resource, start ascending."""
        ...

    def insert(self, reservation: Reservation) -> Reservation:
        ...

    def update_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        *,
        expected_status: ReservationStatus | None = None,
    ) -> Reservation | None:
        """Set the status and bump updated_at.

        Returns None when the reservation does not exist or its current
        status differs from `expected_status`.
        """
        ...

    def find_by_id(self, reservation_id: str) -> Reservation | None:
        ...

    def find(self, query: ReservationQuery) -> list[Reservation]:
        ...

    def reserving(self, resource_id: str) -> AbstractContextManager[ReservingSession]:
        """Serialize conflict check and insert for one resource."""
        ...

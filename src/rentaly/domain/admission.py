"""Reservation admission: decide whether a requested interval may be booked.

Checks run in a fixed order and the first failure wins:

1. the interval must not start in the past
2. the resource must exist
3. the resource must be flagged available
4. no active (pending/confirmed) reservation of the same resource may overlap

Step 4 and the insert that follows run inside the store's per-resource
critical section, so two concurrent requests for the same vehicle cannot
both pass the check. Requests for different vehicles never wait on each
other.

Store reads are retried once on StoreUnavailableError. Once the insert has
been issued a failure is surfaced as-is, never retried.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, TypeVar

from rentaly.domain.errors import (
    IntervalConflictError,
    PastStartDateError,
    ResourceNotFoundError,
    ResourceUnavailableError,
    StoreUnavailableError,
)
from rentaly.domain.intervals import Interval, overlaps
from rentaly.domain.pricing import compute_price
from rentaly.domain.reservations import (
    ACTIVE_STATUSES,
    Reservation,
    ReservationStatus,
    ReservationStore,
)
from rentaly.domain.resources import Resource, ResourceRegistry
from rentaly.infra.notifications import NullNotifier, ReservationNotifier, notify_created
from rentaly.infra.time import as_utc, utc_now
from rentaly.observability.logging import get_logger
from rentaly.observability.redaction import safe_log_context

logger = get_logger(__name__)

T = TypeVar("T")


def retry_read_once(operation: str, fn: Callable[[], T]) -> T:
    """Run a side-effect-free store call, retrying once if the store is down."""
    try:
        return fn()
    except StoreUnavailableError as exc:
        logger.warning(
            "store unavailable, retrying read",
            extra={"extra_fields": {"operation": operation, "error": exc.message}},
        )
        return fn()


def find_conflict(
    interval: Interval, reservations: Iterable[Reservation]
) -> Reservation | None:
    """Return the first active reservation overlapping `interval`, if any.

    Linear scan: a resource holds few active reservations at a time.
    """
    for existing in reservations:
        if existing.status not in ACTIVE_STATUSES:
            continue
        if overlaps(interval, existing.interval):
            return existing
    return None


class AdmissionController:
    """Admits or rejects reservation requests.

    Args:
        store: Reservation store (also provides the per-resource lock).
        registry: Resource lookup.
        notifier: Post-commit hook, fired after a reservation is created.
        clock: Returns the current instant; injected for tests.
        id_factory: Produces reservation ids.
    """

    def __init__(
        self,
        store: ReservationStore,
        registry: ResourceRegistry,
        *,
        notifier: ReservationNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._store = store
        self._registry = registry
        self._notifier = notifier or NullNotifier()
        self._clock = clock
        self._id_factory = id_factory

    def get_resource(self, resource_id: str) -> Resource:
        resource = retry_read_once(
            "get_resource", lambda: self._registry.get_resource(resource_id)
        )
        if resource is None:
            raise ResourceNotFoundError(resource_id)
        return resource

    def quote(self, resource_id: str, interval: Interval) -> Decimal:
        """Price preview for a resource. Does not check availability."""
        resource = self.get_resource(resource_id)
        return compute_price(resource.day_rate, interval)

    def request_reservation(
        self,
        resource_id: str,
        interval: Interval,
        requester_id: str,
    ) -> Reservation:
        """Admit a new pending reservation or raise a ReservationRejected.

        Raises:
            PastStartDateError: interval starts before now.
            ResourceNotFoundError: unknown resource.
            ResourceUnavailableError: resource flagged unavailable.
            IntervalConflictError: overlaps an active reservation.
            StoreUnavailableError: persistence failure.
        """
        self._check_not_in_past(interval)

        resource = self.get_resource(resource_id)
        if not resource.available:
            logger.info(
                "reservation rejected: resource unavailable",
                extra={"extra_fields": {"resource_id": resource_id}},
            )
            raise ResourceUnavailableError(resource_id, resource.label)

        total_price = compute_price(resource.day_rate, interval)
        reservation = self._admit(resource, interval, requester_id, total_price)

        logger.info(
            "reservation admitted",
            extra={
                "extra_fields": {
                    "reservation_id": reservation.id,
                    "resource_id": resource_id,
                    "start": interval.start.isoformat(),
                    "end": interval.end.isoformat(),
                    "total_price": str(total_price),
                    **safe_log_context(requester_id=requester_id),
                }
            },
        )
        notify_created(self._notifier, reservation)
        return reservation

    def _check_not_in_past(self, interval: Interval) -> None:
        now = as_utc(self._clock())
        reference = now if interval.is_datetime else now.date()
        if interval.start < reference:
            logger.info(
                "reservation rejected: start in the past",
                extra={
                    "extra_fields": {
                        "start": interval.start.isoformat(),
                        "now": reference.isoformat(),
                    }
                },
            )
            raise PastStartDateError(interval.start, reference)

    def _admit(
        self,
        resource: Resource,
        interval: Interval,
        requester_id: str,
        total_price: Decimal,
    ) -> Reservation:
        for attempt in (1, 2):
            insert_issued = False
            try:
                with self._store.reserving(resource.id) as session:
                    conflict = find_conflict(
                        interval, session.find_active_by_resource(resource.id)
                    )
                    if conflict is not None:
                        self._log_conflict(resource.id, interval, conflict)
                        raise IntervalConflictError(
                            resource_id=resource.id,
                            conflicting_reservation_id=conflict.id,
                            existing_start=conflict.interval.start,
                            existing_end=conflict.interval.end,
                            existing_status=conflict.status.value,
                        )

                    now = as_utc(self._clock())
                    candidate = Reservation(
                        id=self._id_factory(),
                        resource_id=resource.id,
                        requester_id=requester_id,
                        interval=interval,
                        total_price=total_price,
                        status=ReservationStatus.PENDING,
                        created_at=now,
                        updated_at=now,
                    )
                    insert_issued = True
                    return session.insert(candidate)
            except StoreUnavailableError as exc:
                if insert_issued or attempt == 2:
                    raise
                logger.warning(
                    "store unavailable before insert, retrying admission",
                    extra={
                        "extra_fields": {
                            "resource_id": resource.id,
                            "error": exc.message,
                        }
                    },
                )
        raise StoreUnavailableError()  # pragma: no cover

    @staticmethod
    def _log_conflict(resource_id: str, interval: Interval, conflict: Reservation) -> None:
        logger.warning(
            "reservation conflict detected",
            extra={
                "extra_fields": {
                    "resource_id": resource_id,
                    "requested_start": interval.start.isoformat(),
                    "requested_end": interval.end.isoformat(),
                    "conflicting_reservation_id": conflict.id,
                    "existing_start": conflict.interval.start.isoformat(),
                    "existing_end": conflict.interval.end.isoformat(),
                    "existing_status": conflict.status.value,
                }
            },
        )

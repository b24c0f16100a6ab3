"""Reservation status lifecycle.

    pending ──► confirmed ──► completed
       │            │
       └──► cancelled ◄──┘

completed and cancelled are terminal. A transition is committed with a
compare-and-set on the previous status, then the notifier runs. The hook
never fires before the write is durable, and a failing hook never leaves the
status ambiguous.
"""

from __future__ import annotations

from rentaly.domain.admission import retry_read_once
from rentaly.domain.errors import InvalidTransitionError, ReservationNotFoundError
from rentaly.domain.reservations import Reservation, ReservationStatus, ReservationStore
from rentaly.infra.notifications import (
    NullNotifier,
    ReservationNotifier,
    notify_status_changed,
)
from rentaly.observability.logging import get_logger

logger = get_logger(__name__)

_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


def allowed_transitions(status: ReservationStatus | str) -> frozenset[ReservationStatus]:
    return _TRANSITIONS[ReservationStatus(status)]


def can_transition(current: ReservationStatus | str, target: ReservationStatus | str) -> bool:
    return ReservationStatus(target) in allowed_transitions(current)


class StatusLifecycleManager:
    """Applies status transitions to stored reservations."""

    def __init__(
        self,
        store: ReservationStore,
        *,
        notifier: ReservationNotifier | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier or NullNotifier()

    def transition(
        self, reservation_id: str, target_status: ReservationStatus | str
    ) -> Reservation:
        """Move a reservation to `target_status`.

        Raises:
            ReservationNotFoundError: unknown reservation id.
            InvalidTransitionError: the edge is not allowed from the current
                status (including a concurrent writer having moved it), or
                `target_status` is not a known status.
            StoreUnavailableError: persistence failure.
        """
        current = self._load(reservation_id)
        previous = current.status
        try:
            target = ReservationStatus(target_status)
        except ValueError:
            raise InvalidTransitionError(
                reservation_id, previous.value, str(target_status)
            ) from None
        self._validate(reservation_id, previous, target)

        updated = self._store.update_status(
            reservation_id, target, expected_status=previous
        )
        if updated is None:
            # Lost a race: report against whatever the status is now
            latest = self._load(reservation_id)
            raise InvalidTransitionError(
                reservation_id, latest.status.value, target.value
            )

        logger.info(
            "reservation status changed",
            extra={
                "extra_fields": {
                    "reservation_id": reservation_id,
                    "resource_id": updated.resource_id,
                    "previous_status": previous.value,
                    "status": updated.status.value,
                }
            },
        )
        notify_status_changed(self._notifier, updated, previous)
        return updated

    def _load(self, reservation_id: str) -> Reservation:
        reservation = retry_read_once(
            "find_by_id", lambda: self._store.find_by_id(reservation_id)
        )
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    @staticmethod
    def _validate(
        reservation_id: str, current: ReservationStatus, target: ReservationStatus
    ) -> None:
        if can_transition(current, target):
            return
        logger.info(
            "reservation transition rejected",
            extra={
                "extra_fields": {
                    "reservation_id": reservation_id,
                    "current_status": current.value,
                    "target_status": target.value,
                }
            },
        )
        raise InvalidTransitionError(reservation_id, current.value, target.value)

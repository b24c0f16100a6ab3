"""Post-commit notification hooks.

Hooks run only after the reservation change is durably committed and are
fire-and-forget: a failing hook is logged and never rolls anything back or
reaches the caller. Payloads are PII-free (ids, dates, price, status).
"""

from __future__ import annotations

from typing import Protocol, Sequence

import requests

from rentaly.domain.reservations import Reservation, ReservationStatus
from rentaly.observability.correlation import CORRELATION_ID_HEADER, get_correlation_id
from rentaly.observability.logging import get_logger

logger = get_logger(__name__)

EVENT_RESERVATION_CREATED = "RESERVATION_CREATED"
EVENT_STATUS_CHANGED = "RESERVATION_STATUS_CHANGED"


class ReservationNotifier(Protocol):
    def reservation_created(self, reservation: Reservation) -> None:
        ...

    def status_changed(
        self, reservation: Reservation, previous_status: ReservationStatus
    ) -> None:
        ...


def _event_payload(
    event_type: str,
    reservation: Reservation,
    previous_status: ReservationStatus | None = None,
) -> dict:
    payload = {
        "event_type": event_type,
        "reservation_id": reservation.id,
        "resource_id": reservation.resource_id,
        "start": reservation.interval.start.isoformat(),
        "end": reservation.interval.end.isoformat(),
        "total_price": str(reservation.total_price),
        "status": reservation.status.value,
    }
    if previous_status is not None:
        payload["previous_status"] = previous_status.value
    return payload


class NullNotifier:
    """Discards every event."""

    def reservation_created(self, reservation: Reservation) -> None:
        pass

    def status_changed(
        self, reservation: Reservation, previous_status: ReservationStatus
    ) -> None:
        pass


class LoggingNotifier:
    """Writes one structured log line per event."""

    def reservation_created(self, reservation: Reservation) -> None:
        logger.info(
            "reservation created",
            extra={"extra_fields": _event_payload(EVENT_RESERVATION_CREATED, reservation)},
        )

    def status_changed(
        self, reservation: Reservation, previous_status: ReservationStatus
    ) -> None:
        logger.info(
            "reservation status changed",
            extra={
                "extra_fields": _event_payload(
                    EVENT_STATUS_CHANGED, reservation, previous_status
                )
            },
        )


class WebhookNotifier:
    """POSTs reservation events as JSON to a configured URL."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

    def reservation_created(self, reservation: Reservation) -> None:
        self._post(_event_payload(EVENT_RESERVATION_CREATED, reservation))

    def status_changed(
        self, reservation: Reservation, previous_status: ReservationStatus
    ) -> None:
        self._post(_event_payload(EVENT_STATUS_CHANGED, reservation, previous_status))

    def _post(self, payload: dict) -> bool:
        headers = {"Content-Type": "application/json"}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[CORRELATION_ID_HEADER] = correlation_id

        try:
            response = self._session.post(
                self._url,
                json=payload,
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(
                "reservation webhook delivery failed",
                extra={
                    "extra_fields": {
                        "event_type": payload["event_type"],
                        "reservation_id": payload["reservation_id"],
                        "error": str(e),
                    }
                },
            )
            return False

        logger.info(
            "reservation webhook delivered",
            extra={
                "extra_fields": {
                    "event_type": payload["event_type"],
                    "reservation_id": payload["reservation_id"],
                }
            },
        )
        return True


class CompositeNotifier:
    """Fans an event out to several notifiers, isolating each one."""

    def __init__(self, notifiers: Sequence[ReservationNotifier]) -> None:
        self._notifiers = list(notifiers)

    def reservation_created(self, reservation: Reservation) -> None:
        for notifier in self._notifiers:
            notify_created(notifier, reservation)

    def status_changed(
        self, reservation: Reservation, previous_status: ReservationStatus
    ) -> None:
        for notifier in self._notifiers:
            notify_status_changed(notifier, reservation, previous_status)


def notify_created(notifier: ReservationNotifier, reservation: Reservation) -> None:
    """Invoke the creation hook; failures are logged, never raised."""
    try:
        notifier.reservation_created(reservation)
    except Exception:
        logger.exception(
            "reservation_created hook failed",
            extra={"extra_fields": {"reservation_id": reservation.id}},
        )


def notify_status_changed(
    notifier: ReservationNotifier,
    reservation: Reservation,
    previous_status: ReservationStatus,
) -> None:
    """Invoke the status hook; failures are logged, never raised."""
    try:
        notifier.status_changed(reservation, previous_status)
    except Exception:
        logger.exception(
            "status_changed hook failed",
            extra={
                "extra_fields": {
                    "reservation_id": reservation.id,
                    "previous_status": previous_status.value,
                    "status": reservation.status.value,
                }
            },
        )

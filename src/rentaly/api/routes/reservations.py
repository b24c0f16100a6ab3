"""Reservation endpoints.

POST creates a pending reservation through admission control; transitions go
through the status lifecycle. Authentication happens upstream: the gateway
forwards the caller as X-Requester-ID.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field

from rentaly.api.dependencies import (
    get_admission,
    get_lifecycle,
    get_requester_id,
    get_store,
)
from rentaly.domain.admission import AdmissionController, retry_read_once
from rentaly.domain.errors import ReservationNotFoundError
from rentaly.domain.intervals import Interval
from rentaly.domain.lifecycle import StatusLifecycleManager
from rentaly.domain.reservations import (
    ReservationQuery,
    ReservationStatus,
    ReservationStore,
)
from rentaly.observability.correlation import get_correlation_id
from rentaly.observability.logging import get_logger
from rentaly.observability.redaction import safe_log_context


class CreateReservationRequest(BaseModel):
    """Request body for booking a resource."""

    resource_id: str = Field(..., min_length=1)
    start: str = Field(..., description="YYYY-MM-DD or ISO-8601 timestamp")
    end: str = Field(..., description="YYYY-MM-DD or ISO-8601 timestamp (exclusive)")


class TransitionRequest(BaseModel):
    status: ReservationStatus


router = APIRouter(prefix="/reservations", tags=["reservations"])

logger = get_logger(__name__)


@router.post("", status_code=201)
def create_reservation(
    body: CreateReservationRequest,
    requester_id: str = Depends(get_requester_id),
    admission: AdmissionController = Depends(get_admission),
) -> dict:
    """Request a reservation; returns the pending reservation."""
    logger.info(
        "reservation requested",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                resource_id=body.resource_id,
                requester_id=requester_id,
            )
        },
    )
    interval = Interval.parse(body.start, body.end)
    reservation = admission.request_reservation(body.resource_id, interval, requester_id)
    return {"reservation": reservation.to_dict()}


@router.get("")
def list_reservations(
    resource_id: str | None = Query(None),
    requester_id: str | None = Query(None),
    status: list[ReservationStatus] | None = Query(None, description="Repeatable"),
    from_date: date | None = Query(None, alias="from", description="Filter start >= date"),
    to_date: date | None = Query(None, alias="to", description="Filter start < date"),
    limit: int = Query(100, ge=1, le=500),
    store: ReservationStore = Depends(get_store),
) -> dict:
    """List reservations, newest start first."""
    query = ReservationQuery(
        resource_id=resource_id,
        requester_id=requester_id,
        statuses=frozenset(status or ()),
        starts_from=from_date,
        starts_before=to_date,
        limit=limit,
    )
    reservations = retry_read_once("find", lambda: store.find(query))
    return {"reservations": [r.to_dict() for r in reservations]}


@router.get("/{reservation_id}")
def get_reservation(
    reservation_id: str = Path(..., description="Reservation id"),
    store: ReservationStore = Depends(get_store),
) -> dict:
    reservation = retry_read_once("find_by_id", lambda: store.find_by_id(reservation_id))
    if reservation is None:
        raise ReservationNotFoundError(reservation_id)
    return {"reservation": reservation.to_dict()}


@router.post("/{reservation_id}/transitions")
def transition_reservation(
    body: TransitionRequest,
    reservation_id: str = Path(..., description="Reservation id"),
    lifecycle: StatusLifecycleManager = Depends(get_lifecycle),
) -> dict:
    """Move a reservation to a new status (confirm, complete, cancel)."""
    reservation = lifecycle.transition(reservation_id, body.status)
    return {"reservation": reservation.to_dict()}

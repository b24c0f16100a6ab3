"""FastAPI dependencies resolving the core services built by create_app()."""

from fastapi import Header, HTTPException, Request

from rentaly.domain.admission import AdmissionController
from rentaly.domain.lifecycle import StatusLifecycleManager
from rentaly.domain.reservations import ReservationStore

REQUESTER_HEADER = "X-Requester-ID"


def get_admission(request: Request) -> AdmissionController:
    return request.app.state.admission


def get_lifecycle(request: Request) -> StatusLifecycleManager:
    return request.app.state.lifecycle


def get_store(request: Request) -> ReservationStore:
    return request.app.state.store


def get_requester_id(
    requester_id: str | None = Header(None, alias=REQUESTER_HEADER),
) -> str:
    """Requester reference set by the authenticating gateway in front of us."""
    if not requester_id or not requester_id.strip():
        raise HTTPException(status_code=401, detail=f"{REQUESTER_HEADER} header required")
    return requester_id.strip()

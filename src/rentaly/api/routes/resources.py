"""Resource read endpoints: lookup and price quote."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query

from rentaly.api.dependencies import get_admission
from rentaly.domain.admission import AdmissionController
from rentaly.domain.intervals import Interval, duration_in_days

router = APIRouter(prefix="/resources", tags=["resources"])


@router.get("/{resource_id}")
def get_resource(
    resource_id: str = Path(..., description="Resource id"),
    admission: AdmissionController = Depends(get_admission),
) -> dict:
    return {"resource": admission.get_resource(resource_id).to_dict()}


@router.get("/{resource_id}/quote")
def quote(
    resource_id: str = Path(..., description="Resource id"),
    start: str = Query(..., description="YYYY-MM-DD or ISO-8601 timestamp"),
    end: str = Query(..., description="YYYY-MM-DD or ISO-8601 timestamp (exclusive)"),
    admission: AdmissionController = Depends(get_admission),
) -> dict:
    """Price preview for renting the resource over [start, end)."""
    interval = Interval.parse(start, end)
    total = admission.quote(resource_id, interval)
    return {
        "resource_id": resource_id,
        "start": interval.start.isoformat(),
        "end": interval.end.isoformat(),
        "days": duration_in_days(interval),
        "total_price": str(total),
    }

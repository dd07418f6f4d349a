from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional, Dict, Any

from core.models import EntryKind, NotFoundError
from services.availability_service import AvailabilityService
from services.schedule_service import ScheduleService
from shared.models import EntryKindParam, EventCreateRequest, EventResponse

from ..dependencies import get_availability_service, get_schedule_service

router = APIRouter(prefix="/api/schedules", tags=["schedules"])


@router.get("/day", response_model=Dict[str, Any])
def get_day_availability(
    owner_id: int = Query(..., alias="ownerId", gt=0),
    day: str = Query("today"),
    candidate_start: Optional[str] = Query(None, alias="candidateStart"),
    candidate_end: Optional[str] = Query(None, alias="candidateEnd"),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """
    Day query: the owner's merged entries, free windows and, for a
    candidate interval, the entries it would overlap
    """
    return availability.day_availability(owner_id, day, candidate_start, candidate_end).to_dict()


@router.post("/events", response_model=EventResponse, response_model_exclude_none=True)
def create_event(
    request: EventCreateRequest,
    schedule_service: ScheduleService = Depends(get_schedule_service),
):
    """Event creation command: NEEDS_INFO (400), CONFLICT (409), CREATED (201) or FAILED (500)"""
    result = schedule_service.create_event(request.to_payload())
    return JSONResponse(status_code=result.http_status, content=result.to_dict())


@router.get("/{owner_id}", response_model=Dict[str, Any])
def get_owner_timeline(
    owner_id: int,
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Merged timeline of habit sessions and busy events"""
    entries = availability.timeline(owner_id, start, end)
    return {
        "ownerId": owner_id,
        "total": len(entries),
        "entries": [entry.to_dict() for entry in entries],
    }


@router.delete("/{kind}/{entry_id}", response_model=Dict[str, Any])
def delete_entry(
    kind: EntryKindParam,
    entry_id: int,
    owner_id: Optional[int] = Query(None, alias="ownerId"),
    schedule_service: ScheduleService = Depends(get_schedule_service),
):
    if not schedule_service.delete_entry(EntryKind(kind.value), entry_id, owner_id):
        raise NotFoundError("Schedule entry not found")
    return {"message": "Deleted", "kind": kind.value, "id": entry_id}

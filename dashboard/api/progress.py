from fastapi import APIRouter, Depends
from typing import List, Dict, Any

from services.progress_service import ProgressService
from shared.models import ProgressCountRequest, ProgressCountResponse, ProgressLogRequest

from ..dependencies import get_progress_service

router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.post("/{habit_id}/log", status_code=201, response_model=Dict[str, Any])
def log_progress(
    habit_id: int,
    request: ProgressLogRequest,
    progress: ProgressService = Depends(get_progress_service),
):
    """One press of done/missed: appends a new record"""
    entry = progress.log(request.owner_id, habit_id, request.status.value, request.date, request.reason)
    return {"message": "Logged", "row": entry.to_dict()}


@router.put("/{habit_id}/logs", response_model=ProgressCountResponse)
def set_progress_count(
    habit_id: int,
    request: ProgressCountRequest,
    progress: ProgressService = Depends(get_progress_service),
):
    """Set how many records of one outcome the day holds"""
    return progress.set_count(
        request.owner_id, habit_id, request.status.value, request.target_count, request.date,
    )


@router.get("/today/{owner_id}", response_model=List[Dict[str, Any]])
def get_today_progress(
    owner_id: int,
    progress: ProgressService = Depends(get_progress_service),
):
    return [entry.to_dict() for entry in progress.today_records(owner_id)]

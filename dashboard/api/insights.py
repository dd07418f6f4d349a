from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional, Dict, Any

from services.insights_service import InsightsService
from shared.models import AutoPlanRequest, EventResponse

from ..dependencies import get_insights_service

router = APIRouter(prefix="/api", tags=["insights"])


@router.get("/insights", response_model=Dict[str, Any])
def get_insights(
    owner_id: int = Query(..., alias="ownerId", gt=0),
    days: Optional[int] = Query(None, ge=1),
    insights: InsightsService = Depends(get_insights_service),
):
    """
    Planning insights for the next `days` days (7 by default, at most 21):
    habit streaks, overlaps, free windows, load per day and suggestions
    """
    return insights.insights(owner_id, days)


@router.post("/insights/auto-plan", response_model=EventResponse, response_model_exclude_none=True)
def auto_plan(
    request: AutoPlanRequest,
    insights: InsightsService = Depends(get_insights_service),
):
    """Book a suggested window for an existing habit"""
    result = insights.auto_plan(
        request.owner_id, request.habit_id, request.day,
        request.start_time, request.end_time, request.notes,
    )
    return JSONResponse(status_code=result.http_status, content=result.to_dict())


@router.get("/analytics/progress", response_model=Dict[str, Any])
def get_progress_analytics(
    owner_id: int = Query(..., alias="ownerId", gt=0),
    insights: InsightsService = Depends(get_insights_service),
):
    """Per-habit totals, streaks and best days plus an owner-wide summary"""
    return insights.progress_report(owner_id)

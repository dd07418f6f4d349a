from fastapi import APIRouter, Depends
from typing import Dict, Any

from core.database import DatabaseManager
from core.models import NotFoundError
from shared.models import ReminderSettingRequest

from ..dependencies import get_database

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.put("/{owner_id}/reminder", response_model=Dict[str, Any])
def update_reminder_setting(
    owner_id: int,
    request: ReminderSettingRequest,
    database: DatabaseManager = Depends(get_database),
):
    """Daily reminder time, zone and on/off switch"""
    if not database.owner_exists(owner_id):
        raise NotFoundError("User not found")

    database.save_reminder_setting(
        owner_id,
        daily_reminder_time=request.daily_reminder_time,
        timezone=request.timezone,
        email_alerts=request.email_alerts,
    )
    return {
        "message": "Reminder settings saved",
        "ownerId": owner_id,
        "dailyReminderTime": request.daily_reminder_time,
        "timezone": request.timezone,
        "emailAlerts": request.email_alerts,
    }

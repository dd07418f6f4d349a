from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Dict, Any, Union
from enum import Enum

# Enums
class OutcomeStatus(str, Enum):
    DONE = "done"
    MISSED = "missed"

class EntryKindParam(str, Enum):
    HABIT = "habit"
    CUSTOM = "custom"


class CamelModel(BaseModel):
    """Accepts camelCase aliases as well as field names"""
    model_config = ConfigDict(populate_by_name=True)


# Event creation
class EventCreateRequest(CamelModel):
    """
    Raw event request. Every field is optional so that incomplete requests
    reach the creation protocol and come back as NEEDS_INFO instead of a
    validation error.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    owner_id: Optional[Union[int, str]] = Field(None, alias="ownerId")
    title: Optional[str] = None
    day: Optional[str] = None
    start_time: Optional[Union[str, int]] = Field(None, alias="startTime")
    end_time: Optional[Union[str, int]] = Field(None, alias="endTime")
    repeat: Optional[str] = None
    custom_days: Optional[str] = Field(None, alias="customDays")
    notes: Optional[str] = None
    end_date: Optional[str] = Field(None, alias="endDate")

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True, exclude_none=True)
        for key in ("startTime", "endTime"):
            if isinstance(payload.get(key), int):
                payload[key] = str(payload[key])
        return payload


class EventResponse(BaseModel):
    status: str
    question: Optional[str] = None
    missing: Optional[List[str]] = None
    reason: Optional[str] = None
    table: Optional[str] = None
    id: Optional[int] = None
    title: Optional[str] = None
    day: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    repeat: Optional[str] = None


class AutoPlanRequest(CamelModel):
    owner_id: int = Field(..., alias="userId", gt=0)
    habit_id: int = Field(..., alias="habitId", gt=0)
    day: str
    start_time: str = Field(..., alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    notes: Optional[str] = None


# Completion log
class ProgressLogRequest(CamelModel):
    owner_id: int = Field(..., alias="userId", gt=0)
    status: OutcomeStatus
    date: Optional[str] = None
    reason: Optional[str] = None


class ProgressCountRequest(CamelModel):
    owner_id: int = Field(..., alias="userId", gt=0)
    status: OutcomeStatus
    target_count: int = Field(..., alias="targetCount")
    date: Optional[str] = None

    @field_validator('target_count')
    @classmethod
    def validate_target_count(cls, v):
        if v < 0:
            raise ValueError('targetCount must be a non-negative number')
        return v


class ProgressCounts(BaseModel):
    done: int = 0
    missed: int = 0


class ProgressCountResponse(BaseModel):
    message: str = "Progress updated"
    counts: ProgressCounts
    date: str


# Reminders
class ReminderSettingRequest(CamelModel):
    daily_reminder_time: Optional[str] = Field(None, alias="dailyReminderTime")
    timezone: Optional[str] = None
    email_alerts: bool = Field(True, alias="emailAlerts")

    @field_validator('daily_reminder_time')
    @classmethod
    def validate_reminder_time(cls, v):
        if v is None:
            return v
        parts = v.split(":")
        if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
            raise ValueError('dailyReminderTime must be HH:MM')
        if int(parts[0]) > 23 or int(parts[1]) > 59:
            raise ValueError('dailyReminderTime must be HH:MM')
        return v


# Service
class HealthCheck(BaseModel):
    status: str
    service: str
    version: str
    timestamp: float
    uptime_seconds: float = 0.0
    database: bool = True

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
StepHabit Scheduler - Core Data Models
Schedule entries, completion log, derived views and the error taxonomy

Author: StepHabit Team
Version: 1.2.0
Date: 2025-11-04
"""

from datetime import date
from typing import Dict, List, Optional, Union, Any
from dataclasses import dataclass, field, asdict
from enum import Enum
import logging

logger = logging.getLogger(__name__)

# ===== ENUMS =====

class EntryKind(Enum):
    """Source of an aggregated entry"""
    HABIT = "habit"
    CUSTOM = "custom"


class Outcome(Enum):
    """Completion log outcomes"""
    DONE = "done"
    MISSED = "missed"


class RepeatRule(Enum):
    """Stored repeat rules (never expanded into occurrences)"""
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class EventStatus(Enum):
    """Event creation protocol states"""
    COLLECTING = "COLLECTING"
    NEEDS_INFO = "NEEDS_INFO"
    CONFLICT = "CONFLICT"
    CREATED = "CREATED"
    FAILED = "FAILED"

# ===== EXCEPTIONS =====

class EngineError(Exception):
    """Base error of the scheduling engine"""
    status_code = 500

    def __init__(self, message: str, question: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.question = question

    def to_dict(self) -> Dict[str, Any]:
        data = {"error": self.message}
        if self.question:
            data["question"] = self.question
        return data


class ValidationError(EngineError):
    """Malformed or missing field"""
    status_code = 400

    def __init__(self, message: str, field_name: Optional[str] = None, question: Optional[str] = None):
        super().__init__(message, question)
        self.field_name = field_name

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.field_name:
            data["missing"] = [self.field_name]
        return data


class InvalidTimeFormat(ValidationError):
    """Time token is not H, H:M or H:M:S within range"""

    def __init__(self, token: Any, field_name: str = "startTime"):
        super().__init__(f"Invalid time format: {token!r}", field_name=field_name)
        self.token = token


class InvalidDate(ValidationError):
    """Day token is neither a date nor today/tomorrow"""

    def __init__(self, token: Any):
        super().__init__(f"Invalid date: {token!r}", field_name="day")
        self.token = token


class ConflictError(EngineError):
    """Overlap or duplicate"""
    status_code = 409


class NotFoundError(EngineError):
    """Unknown owner, habit or entry"""
    status_code = 404


class PersistenceError(EngineError):
    """Transaction or store failure"""
    status_code = 500

# ===== HELPERS =====

def format_minutes(minutes: Optional[int]) -> Optional[str]:
    """Minute of day -> zero-padded HH:MM; 24:00 marks end of day, later values wrap"""
    if minutes is None:
        return None
    if minutes > 24 * 60:
        minutes %= 24 * 60
    return f"{minutes // 60:02d}:{minutes % 60:02d}"

# ===== STORED ROWS =====

@dataclass
class HabitRecord:
    """Habit as seen by the engine"""
    id: int
    owner_id: int
    title: str
    category: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScheduleEntry:
    """Habit-linked session row. Times are stored as HH:MM:SS."""
    id: int
    owner_id: int
    habit_id: int
    day: str
    start_time: str
    end_time: Optional[str] = None
    repeat: str = RepeatRule.DAILY.value
    custom_days: Optional[str] = None
    notes: Optional[str] = None
    end_date: Optional[str] = None
    habit_title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "habitId": self.habit_id,
            "title": self.habit_title,
            "day": self.day,
            "startTime": self.start_time[:5],
            "endTime": self.end_time[:5] if self.end_time else None,
            "repeat": self.repeat,
            "customDays": self.custom_days,
            "notes": self.notes,
            "endDate": self.end_date,
        }


@dataclass
class BusyEntry:
    """Ad hoc busy event row"""
    id: int
    owner_id: int
    title: Optional[str]
    day: str
    start_time: str
    end_time: Optional[str] = None
    repeat: str = RepeatRule.DAILY.value
    custom_days: Optional[str] = None
    notes: Optional[str] = None
    end_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "title": self.title,
            "day": self.day,
            "startTime": self.start_time[:5],
            "endTime": self.end_time[:5] if self.end_time else None,
            "repeat": self.repeat,
            "customDays": self.custom_days,
            "notes": self.notes,
            "endDate": self.end_date,
        }


@dataclass
class CompletionLogEntry:
    """One appended done/missed record"""
    owner_id: int
    habit_id: int
    date: str
    outcome: str
    id: Optional[int] = None

    def __post_init__(self):
        try:
            date.fromisoformat(self.date)
        except (TypeError, ValueError):
            raise InvalidDate(self.date)
        if self.outcome not in (Outcome.DONE.value, Outcome.MISSED.value):
            raise ValidationError(f"Unknown outcome: {self.outcome}", field_name="status")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReminderSetting:
    """Per-user daily reminder preferences"""
    owner_id: int
    email: Optional[str]
    name: Optional[str] = None
    daily_reminder_time: Optional[str] = None
    timezone: Optional[str] = None
    email_alerts: bool = True
    last_reminder_sent_date: Optional[str] = None

# ===== DERIVED VIEWS =====

@dataclass(frozen=True)
class Interval:
    """Half-open [start, end) range in minutes since midnight"""
    start: int
    end: int

    def __post_init__(self):
        if self.start >= self.end:
            raise ValidationError(
                "End time must be after the start time",
                field_name="endTime",
                question="End time must be after the start time. What end time should I use?",
            )

    @property
    def duration(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class HabitRef:
    """Aggregated entry backed by a habit session"""
    habit_id: int
    kind = EntryKind.HABIT


@dataclass(frozen=True)
class CustomRef:
    """Aggregated entry backed by an ad hoc busy row"""
    title: Optional[str]
    kind = EntryKind.CUSTOM


EntrySource = Union[HabitRef, CustomRef]


@dataclass(frozen=True)
class AggregatedEntry:
    """Read-only timeline item shared by both entry kinds"""
    id: int
    day: str
    start_minute: int
    end_minute: int
    title: str
    source: EntrySource
    has_explicit_end: bool = True

    @property
    def kind(self) -> EntryKind:
        return self.source.kind

    @property
    def habit_id(self) -> Optional[int]:
        return self.source.habit_id if isinstance(self.source, HabitRef) else None

    @property
    def interval(self) -> Interval:
        return Interval(self.start_minute, self.end_minute)

    @property
    def display_title(self) -> str:
        return self.title

    @property
    def sort_key(self):
        return (self.start_minute, self.end_minute)

    def summary(self) -> str:
        """'Title at HH:MM-HH:MM' (end omitted when it was defaulted)"""
        start = format_minutes(self.start_minute)
        if self.has_explicit_end:
            return f"{self.title} at {start}-{format_minutes(self.end_minute)}"
        return f"{self.title} at {start}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "habitId": self.habit_id,
            "title": self.title,
            "day": self.day,
            "start": format_minutes(self.start_minute),
            "end": format_minutes(self.end_minute),
            "durationMinutes": self.end_minute - self.start_minute,
        }


@dataclass(frozen=True)
class FreeWindow:
    """Open capacity inside the bounded day"""
    day: str
    start_minute: int
    end_minute: int

    @property
    def duration(self) -> int:
        return max(0, self.end_minute - self.start_minute)

    @property
    def interval(self) -> Interval:
        return Interval(self.start_minute, self.end_minute)

    def label(self) -> str:
        return f"{format_minutes(self.start_minute)}-{format_minutes(self.end_minute)}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day,
            "start": format_minutes(self.start_minute),
            "end": format_minutes(self.end_minute),
            "durationMinutes": self.duration,
        }


@dataclass(frozen=True)
class OverlapPair:
    """Two entries of one day whose intervals intersect"""
    day: str
    first: AggregatedEntry
    second: AggregatedEntry
    overlap_minutes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "first": self.first.to_dict(),
            "second": self.second.to_dict(),
            "overlapMinutes": self.overlap_minutes,
        }

# ===== STATISTICS =====

@dataclass
class DaySummary:
    """done/missed counts for one tracked date"""
    date: str
    done: int = 0
    missed: int = 0

    @property
    def successful(self) -> bool:
        return self.done > self.missed and self.done > 0

    @property
    def net(self) -> int:
        return self.done - self.missed

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "completed": self.done, "missed": self.missed, "net": self.net}


@dataclass
class StreakInfo:
    current: int = 0
    longest: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"current": self.current, "best": self.longest}


@dataclass
class RollingSummary:
    """Short-horizon momentum over the most recent tracked days"""
    days: int = 0
    done: int = 0
    missed: int = 0
    completion_rate: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "days": self.days,
            "done": self.done,
            "missed": self.missed,
            "completionRate": self.completion_rate,
        }


@dataclass
class HabitMetrics:
    habit_id: int
    name: str
    category: Optional[str]
    timeline: List[DaySummary] = field(default_factory=list)
    streak: StreakInfo = field(default_factory=StreakInfo)
    success_rate: Optional[int] = None
    done_total: int = 0
    missed_total: int = 0
    recent: RollingSummary = field(default_factory=RollingSummary)
    best_day: Optional[DaySummary] = None

    @property
    def total_checks(self) -> int:
        return self.done_total + self.missed_total

    def to_dict(self, include_timeline: bool = False) -> Dict[str, Any]:
        data = {
            "habitId": self.habit_id,
            "habitName": self.name,
            "category": self.category,
            "totals": {"done": self.done_total, "missed": self.missed_total},
            "successRate": self.success_rate,
            "streak": self.streak.to_dict(),
            "recent": self.recent.to_dict(),
            "bestDay": self.best_day.to_dict() if self.best_day else None,
        }
        if include_timeline:
            data["productivity"] = [day.to_dict() for day in self.timeline]
        return data

# ===== PROTOCOL RESULT =====

@dataclass
class EventResult:
    """Terminal outcome of the event creation protocol"""
    status: EventStatus
    question: Optional[str] = None
    missing: List[str] = field(default_factory=list)
    reason: Optional[str] = None
    created: Optional[Dict[str, Any]] = None

    @property
    def http_status(self) -> int:
        return {
            EventStatus.CREATED: 201,
            EventStatus.CONFLICT: 409,
            EventStatus.NEEDS_INFO: 400,
        }.get(self.status, 500)

    @classmethod
    def needs_info(cls, field_name: str, question: str) -> "EventResult":
        return cls(status=EventStatus.NEEDS_INFO, question=question, missing=[field_name])

    @classmethod
    def conflict(cls, reason: str, question: str) -> "EventResult":
        return cls(status=EventStatus.CONFLICT, reason=reason, question=question)

    @classmethod
    def failed(cls, reason: str = "Could not save the event. Please try again.") -> "EventResult":
        return cls(status=EventStatus.FAILED, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        if self.status == EventStatus.NEEDS_INFO:
            data.update({"question": self.question, "missing": self.missing})
        elif self.status == EventStatus.CONFLICT:
            data.update({"reason": self.reason, "question": self.question})
        elif self.status == EventStatus.CREATED:
            data.update(self.created or {})
        else:
            data["reason"] = self.reason
        return data

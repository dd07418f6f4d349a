# services/schedule_service.py

"""
Event creation protocol.

A request walks COLLECTING -> one of NEEDS_INFO / CONFLICT / CREATED / FAILED.
Fields are checked one at a time, so the caller only ever gets a single
follow-up question per round.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from config import config
from core.aggregator import EntryAggregator
from core.database import DatabaseManager, DuplicateEntryError
from core.free_windows import find_alternative_slots
from core.intervals import canonical_time, parse_time, resolve_day
from core.models import (
    AggregatedEntry, EntryKind, EventResult, EventStatus, HabitRecord, Interval, InvalidDate,
    InvalidTimeFormat, PersistenceError, RepeatRule, ValidationError,
)
from core.overlap import first_conflict
from utils.validators import is_valid_repeat, normalize_title, title_key

logger = logging.getLogger(__name__)

# ===== FOLLOW-UP QUESTIONS =====

QUESTION_TITLE = "What is the event or habit title?"
QUESTION_DAY = "Which date should I use (YYYY-MM-DD, today, or tomorrow)?"
QUESTION_START = "What start time should I set? (HH:MM)"
QUESTION_END_MISSING = "What end time should I set for this event?"
QUESTION_END_INVALID = "What end time should I set? (HH:MM)"
QUESTION_END_ORDER = "End time must be after the start time. What end time should I use?"
QUESTION_OWNER = "Which user is this for?"
QUESTION_REPEAT = "How often should it repeat (once, daily, weekly, or custom)?"
QUESTION_NEW_TIME = "What new time should I use?"
QUESTION_END_DATE = "Until which date should it repeat (YYYY-MM-DD)?"

REASON_HABIT_DUPLICATE = "This habit is already scheduled for that time."
QUESTION_HABIT_DUPLICATE = "Would you like to choose a different time?"
REASON_EVENT_DUPLICATE = "This event already exists at that time."
QUESTION_EVENT_DUPLICATE = "Do you want to schedule it for a different time?"


def _first(payload: Dict[str, Any], *keys: str) -> Any:
    """First non-empty value among the accepted spellings of a field"""
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ScheduleService:
    """Validates, checks and persists new schedule events"""

    def __init__(self, store: DatabaseManager, today: Optional[date] = None):
        self.store = store
        self.aggregator = EntryAggregator(store)
        self._today = today

    # ----- public API -----

    def create_event(self, payload: Dict[str, Any]) -> EventResult:
        """Run the protocol for one request payload"""
        payload = payload or {}

        title = normalize_title(_first(payload, "title", "habitTitle", "habit_title"))
        if not title:
            return EventResult.needs_info("title", QUESTION_TITLE)

        try:
            day = resolve_day(_first(payload, "day", "date"), today=self._today)
        except InvalidDate:
            return EventResult.needs_info("day", QUESTION_DAY)

        try:
            start_time = canonical_time(_first(payload, "startTime", "starttime", "start_time", "start"))
        except InvalidTimeFormat:
            return EventResult.needs_info("startTime", QUESTION_START)

        raw_end = _first(payload, "endTime", "endtime", "end_time", "end")
        if _is_blank(raw_end):
            return EventResult.needs_info("endTime", QUESTION_END_MISSING)
        try:
            end_time = canonical_time(raw_end, field_name="endTime")
        except InvalidTimeFormat:
            return EventResult.needs_info("endTime", QUESTION_END_INVALID)

        try:
            candidate = Interval(parse_time(start_time), parse_time(end_time))
        except ValidationError:
            return EventResult.needs_info("endTime", QUESTION_END_ORDER)

        owner_id = self._owner_id(payload)
        if owner_id is None:
            return EventResult.needs_info("ownerId", QUESTION_OWNER)

        repeat = str(_first(payload, "repeat") or config.scheduling.default_repeat).strip().lower()
        if not is_valid_repeat(repeat):
            return EventResult.needs_info("repeat", QUESTION_REPEAT)
        custom_days = _first(payload, "customDays", "customdays", "custom_days")
        if repeat != RepeatRule.CUSTOM.value:
            custom_days = None

        try:
            end_date = self._end_date(payload)
        except InvalidDate:
            return EventResult.needs_info("endDate", QUESTION_END_DATE)

        habit = None
        try:
            if not self.store.owner_exists(owner_id):
                return EventResult.needs_info("ownerId", QUESTION_OWNER)

            habit = self.store.find_habit_by_title(owner_id, title)

            duplicate = self._find_duplicate(owner_id, habit, title, day, start_time, end_time)
            if duplicate is not None:
                return duplicate

            entries = self.aggregator.for_day(owner_id, day)
            conflict = first_conflict(candidate, entries)
            if conflict is not None:
                return self._conflict_result(conflict, candidate, entries, day)

            return self._persist(
                owner_id=owner_id,
                habit=habit,
                title=title,
                day=day,
                start_time=start_time,
                end_time=end_time,
                repeat=repeat,
                custom_days=str(custom_days) if custom_days else None,
                notes=_first(payload, "notes"),
                end_date=end_date,
            )
        except DuplicateEntryError:
            logger.warning(f"⚠️ Concurrent insert for owner {owner_id} on {day} at {start_time}")
            return self._duplicate_result(habit is not None)
        except PersistenceError as e:
            logger.error(f"❌ Failed to create schedule event for owner {owner_id}: {e}")
            return EventResult.failed()

    # ----- protocol steps -----

    def _owner_id(self, payload: Dict[str, Any]) -> Optional[int]:
        raw = _first(payload, "ownerId", "userId", "user_id", "userid")
        if raw is None:
            return None
        try:
            owner_id = int(raw)
        except (TypeError, ValueError):
            return None
        return owner_id if owner_id > 0 else None

    def _end_date(self, payload: Dict[str, Any]) -> Optional[str]:
        raw = _first(payload, "endDate", "enddate", "end_date")
        if raw is None:
            return None
        return resolve_day(raw, today=self._today)

    def _find_duplicate(self, owner_id: int, habit: Optional[HabitRecord], title: str,
                        day: str, start_time: str, end_time: str) -> Optional[EventResult]:
        if habit is not None:
            for row in self.store.list_schedule_rows(owner_id, day, day):
                if (row.habit_id == habit.id and row.start_time == start_time
                        and row.end_time == end_time):
                    return self._duplicate_result(True)
            return None

        key = title_key(title)
        for row in self.store.list_busy_rows(owner_id, day, day):
            if title_key(row.title) == key and row.start_time == start_time and row.end_time == end_time:
                return self._duplicate_result(False)
        return None

    @staticmethod
    def _duplicate_result(is_habit: bool) -> EventResult:
        if is_habit:
            return EventResult.conflict(REASON_HABIT_DUPLICATE, QUESTION_HABIT_DUPLICATE)
        return EventResult.conflict(REASON_EVENT_DUPLICATE, QUESTION_EVENT_DUPLICATE)

    def _conflict_result(self, conflict: AggregatedEntry, candidate: Interval,
                         entries: List[AggregatedEntry], day: str) -> EventResult:
        slots = find_alternative_slots(entries, day, candidate.duration, search_start=conflict.end_minute)
        if slots:
            question = f"Would you like to try {' or '.join(slot.label() for slot in slots)}?"
        else:
            question = QUESTION_NEW_TIME
        logger.info(f"🔄 Candidate {candidate.start}-{candidate.end} on {day} conflicts with entry {conflict.id}")
        return EventResult.conflict(f"Conflicts with {conflict.summary()}.", question)

    def _persist(self, owner_id: int, habit: Optional[HabitRecord], title: str, day: str,
                 start_time: str, end_time: str, repeat: str, custom_days: Optional[str],
                 notes: Optional[str], end_date: Optional[str]) -> EventResult:
        if habit is not None:
            entry = self.store.create_schedule_entry(
                owner_id, habit, day, start_time, end_time, repeat,
                custom_days=custom_days, notes=notes, end_date=end_date,
            )
            table, display_title = "schedules", habit.title
        else:
            entry = self.store.create_busy_entry(
                owner_id, title, day, start_time, end_time, repeat,
                custom_days=custom_days, notes=notes, end_date=end_date,
            )
            table, display_title = "busy_schedules", title

        logger.info(f"✅ Created {table} row {entry.id} for owner {owner_id} on {day} at {start_time[:5]}")
        return EventResult(
            status=EventStatus.CREATED,
            created={
                "table": table,
                "id": entry.id,
                "title": display_title,
                "day": day,
                "startTime": start_time[:5],
                "endTime": end_time[:5],
                "repeat": repeat,
            },
        )

    def delete_entry(self, kind: EntryKind, entry_id: int, owner_id: Optional[int] = None) -> bool:
        deleted = self.store.delete_entry(kind, entry_id, owner_id)
        if deleted:
            logger.info(f"🗑️ Deleted {kind.value} entry {entry_id}")
        return deleted

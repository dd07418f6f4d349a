# services/progress_service.py

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from core.database import DatabaseManager
from core.intervals import resolve_day
from core.models import CompletionLogEntry, HabitRecord, NotFoundError, ValidationError
from utils.datetime_utils import today_local
from utils.validators import is_valid_outcome

logger = logging.getLogger(__name__)


class ProgressService:
    """Append-only completion log: one row per done/missed press"""

    def __init__(self, store: DatabaseManager, today: Optional[date] = None):
        self.store = store
        self._today = today

    @property
    def today(self) -> date:
        return self._today or today_local()

    def _require_habit(self, owner_id: int, habit_id: int) -> HabitRecord:
        habit = self.store.get_habit(habit_id)
        if habit is None or habit.owner_id != owner_id:
            raise NotFoundError("Habit not found")
        return habit

    @staticmethod
    def _check_outcome(outcome: str) -> None:
        if not is_valid_outcome(outcome):
            raise ValidationError("status must be 'done' or 'missed'", field_name="status")

    def log(self, owner_id: int, habit_id: int, outcome: str,
            day: Optional[str] = None, reason: Optional[str] = None) -> CompletionLogEntry:
        """Append one record (today unless a day is given)"""
        self._check_outcome(outcome)
        self._require_habit(owner_id, habit_id)
        progress_day = resolve_day(day, today=self.today) if day else self.today.isoformat()

        entry = self.store.append_progress(owner_id, habit_id, outcome, progress_day, reason=reason)
        logger.info(f"✅ Logged {outcome} for habit {habit_id} (owner {owner_id}) on {progress_day}")
        return entry

    def set_count(self, owner_id: int, habit_id: int, outcome: str, target_count: int,
                  day: Optional[str] = None) -> Dict[str, Any]:
        """
        Make the day hold exactly `target_count` records of `outcome`.

        Missing records are appended; surplus records are removed newest
        first. Existing rows are never edited.
        """
        self._check_outcome(outcome)
        try:
            target = int(target_count)
        except (TypeError, ValueError):
            raise ValidationError("targetCount must be a non-negative number", field_name="targetCount")
        if target < 0:
            raise ValidationError("targetCount must be a non-negative number", field_name="targetCount")

        self._require_habit(owner_id, habit_id)
        progress_day = resolve_day(day, today=self.today) if day else self.today.isoformat()

        done, missed = self.store.set_progress_count(owner_id, habit_id, outcome, progress_day, target)
        logger.info(f"🔄 Habit {habit_id} on {progress_day}: {done} done / {missed} missed")
        return {"counts": {"done": done, "missed": missed}, "date": progress_day}

    def today_records(self, owner_id: int) -> List[CompletionLogEntry]:
        day = self.today.isoformat()
        return self.store.list_progress(owner_id, since=day, until=day)

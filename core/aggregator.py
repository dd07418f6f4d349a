"""
Entry aggregator: merges habit-linked sessions and ad hoc busy rows into one
sorted timeline per day.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional

from core.intervals import effective_end, parse_optional_time, parse_time
from core.models import AggregatedEntry, BusyEntry, CustomRef, HabitRef, ScheduleEntry

logger = logging.getLogger(__name__)

HABIT_FALLBACK_TITLE = "Habit"
CUSTOM_FALLBACK_TITLE = "Scheduled time"


def _habit_title(row: ScheduleEntry, habit_titles: Mapping[int, str]) -> str:
    return row.habit_title or habit_titles.get(row.habit_id) or HABIT_FALLBACK_TITLE


def _to_entry(row, source, title: str, default_duration: Optional[int]) -> AggregatedEntry:
    start = parse_time(row.start_time)
    stored_end = parse_optional_time(row.end_time)
    end = effective_end(start, stored_end, default_duration)
    return AggregatedEntry(
        id=row.id,
        day=row.day,
        start_minute=start,
        end_minute=end,
        title=title,
        source=source,
        has_explicit_end=stored_end is not None and stored_end > start,
    )


def sort_timeline(entries: Iterable[AggregatedEntry]) -> List[AggregatedEntry]:
    """Stable sort by start minute, ties by end minute"""
    return sorted(entries, key=lambda entry: entry.sort_key)


def aggregate(schedule_rows: Iterable[ScheduleEntry],
              busy_rows: Iterable[BusyEntry],
              habit_titles: Optional[Mapping[int, str]] = None,
              default_duration: Optional[int] = None) -> Dict[str, List[AggregatedEntry]]:
    """
    Build {day: [AggregatedEntry, ...]} from both sources.

    Habit rows come first in the input order, so for identical
    (start, end) pairs habit sessions precede custom events.
    """
    habit_titles = habit_titles or {}
    by_day: Dict[str, List[AggregatedEntry]] = defaultdict(list)

    for row in schedule_rows:
        by_day[row.day].append(
            _to_entry(row, HabitRef(row.habit_id), _habit_title(row, habit_titles), default_duration)
        )

    for row in busy_rows:
        title = (row.title or "").strip() or CUSTOM_FALLBACK_TITLE
        by_day[row.day].append(_to_entry(row, CustomRef(row.title), title, default_duration))

    return {day: sort_timeline(by_day[day]) for day in sorted(by_day)}


def flatten(by_day: Mapping[str, List[AggregatedEntry]]) -> List[AggregatedEntry]:
    """Chronological list across days"""
    return [entry for day in sorted(by_day) for entry in by_day[day]]


class EntryAggregator:
    """Store-backed aggregation for one owner"""

    def __init__(self, store, default_duration: Optional[int] = None):
        self.store = store
        self.default_duration = default_duration

    def for_owner(self, owner_id: int, start_day: Optional[str] = None,
                  end_day: Optional[str] = None) -> Dict[str, List[AggregatedEntry]]:
        schedule_rows = self.store.list_schedule_rows(owner_id, start_day, end_day)
        busy_rows = self.store.list_busy_rows(owner_id, start_day, end_day)
        logger.debug(
            f"Aggregating {len(schedule_rows)} habit and {len(busy_rows)} custom rows for owner {owner_id}"
        )
        return aggregate(schedule_rows, busy_rows, default_duration=self.default_duration)

    def for_day(self, owner_id: int, day: str) -> List[AggregatedEntry]:
        return self.for_owner(owner_id, day, day).get(day, [])

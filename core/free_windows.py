"""
Free-window finder: open capacity inside the bounded day.
"""

from typing import Iterable, List, Mapping, Optional

from config import config
from core.aggregator import sort_timeline
from core.intervals import MINUTES_PER_DAY
from core.models import AggregatedEntry, FreeWindow


def find_free_windows(entries: Iterable[AggregatedEntry], day: str,
                      min_duration: Optional[int] = None,
                      day_start: Optional[int] = None,
                      day_end: Optional[int] = None) -> List[FreeWindow]:
    """
    Gaps between the day's entries within [day_start, day_end].

    Windows shorter than `min_duration` (20 minutes by default) are dropped.
    """
    settings = config.scheduling
    day_start = settings.day_start_minute if day_start is None else day_start
    day_end = settings.day_end_minute if day_end is None else day_end
    min_duration = settings.min_window_minutes if min_duration is None else min_duration

    windows: List[FreeWindow] = []
    cursor = day_start

    for entry in sort_timeline(entries):
        if entry.start_minute > cursor:
            window_end = min(entry.start_minute, day_end)
            if window_end > cursor:
                windows.append(FreeWindow(day, cursor, window_end))
        cursor = max(cursor, entry.end_minute)

    if cursor < day_end:
        windows.append(FreeWindow(day, cursor, day_end))

    return [window for window in windows if window.duration >= min_duration]


def find_free_windows_for_days(by_day: Mapping[str, List[AggregatedEntry]],
                               days: Optional[Iterable[str]] = None,
                               min_duration: Optional[int] = None) -> List[FreeWindow]:
    """
    Windows for every day in `days` (defaults to the days present in
    `by_day`), sorted by (date, start). Days without entries are fully open.
    """
    all_days = sorted(set(days) if days is not None else set(by_day))
    windows: List[FreeWindow] = []
    for day in all_days:
        windows.extend(find_free_windows(by_day.get(day, []), day, min_duration=min_duration))
    return sorted(windows, key=lambda window: (window.day, window.start_minute))


def find_alternative_slots(entries: Iterable[AggregatedEntry], day: str, duration: int,
                           search_start: int, limit: Optional[int] = None,
                           day_end: int = MINUTES_PER_DAY) -> List[FreeWindow]:
    """
    Up to `limit` slots of exactly `duration` minutes at or after
    `search_start`, one per gap, that do not run past `day_end`.
    """
    if duration <= 0:
        return []
    limit = config.scheduling.alternative_slot_count if limit is None else limit

    slots: List[FreeWindow] = []
    cursor = max(0, search_start)

    for entry in sort_timeline(entries):
        if len(slots) >= limit:
            return slots
        if cursor < entry.start_minute and entry.start_minute - cursor >= duration:
            slots.append(FreeWindow(day, cursor, cursor + duration))
        cursor = max(cursor, entry.end_minute)

    if len(slots) < limit and day_end - cursor >= duration:
        slots.append(FreeWindow(day, cursor, cursor + duration))

    return slots[:limit]


def total_busy_minutes(entries: Iterable[AggregatedEntry]) -> int:
    return sum(max(0, entry.end_minute - entry.start_minute) for entry in entries)

"""
Streak & success-rate calculator.

Works on an unordered completion log where several done/missed records may
share a date. Each tracked date is reduced to a DaySummary first; a day is
successful when it has more done than missed records and at least one done.
"""

from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from config import config
from core.models import (
    CompletionLogEntry, DaySummary, HabitMetrics, HabitRecord, Outcome, RollingSummary, StreakInfo,
)

Record = Union[CompletionLogEntry, Tuple[str, str]]

ONE_DAY = timedelta(days=1)


def _unpack(record: Record) -> Tuple[str, str]:
    if isinstance(record, CompletionLogEntry):
        return record.date, record.outcome
    return record


def build_timeline(records: Iterable[Record]) -> List[DaySummary]:
    """Group records per date, sorted ascending"""
    buckets = {}
    for record in records:
        day, outcome = _unpack(record)
        bucket = buckets.setdefault(day, DaySummary(date=day))
        if outcome == Outcome.DONE.value:
            bucket.done += 1
        elif outcome == Outcome.MISSED.value:
            bucket.missed += 1
    return [buckets[day] for day in sorted(buckets)]


def current_streak(timeline: List[DaySummary], today: date) -> int:
    """
    Consecutive successful days ending today.

    The walk starts at today and expects exactly one calendar day between
    neighbours; an untracked day, a failed day, or an untracked today ends
    it. Records dated after today are ignored.
    """
    streak = 0
    expected = today
    for summary in reversed(timeline):
        day = date.fromisoformat(summary.date)
        if day > today:
            continue
        if day != expected or not summary.successful:
            break
        streak += 1
        expected -= ONE_DAY
    return streak


def longest_streak(timeline: List[DaySummary]) -> int:
    best = 0
    run = 0
    previous_success: Optional[date] = None

    for summary in timeline:
        day = date.fromisoformat(summary.date)
        if summary.successful:
            if previous_success is not None and day - previous_success == ONE_DAY:
                run += 1
            else:
                run = 1
            previous_success = day
            best = max(best, run)
        else:
            run = 0
            previous_success = None

    return best


def compute_streak(timeline: List[DaySummary], today: date) -> StreakInfo:
    return StreakInfo(current=current_streak(timeline, today), longest=longest_streak(timeline))


def success_rate(done: int, missed: int) -> Optional[int]:
    """round(100 * done / total) with halves rounded up; None without records"""
    total = done + missed
    if total <= 0:
        return None
    return (200 * done + total) // (2 * total)


def timeline_totals(timeline: Iterable[DaySummary]) -> Tuple[int, int]:
    done = missed = 0
    for summary in timeline:
        done += summary.done
        missed += summary.missed
    return done, missed


def rolling_summary(timeline: List[DaySummary], days: Optional[int] = None) -> RollingSummary:
    """Totals over the most recent `days` tracked days (not a calendar week)"""
    days = config.scheduling.rolling_window_days if days is None else days
    recent = timeline[-days:] if days > 0 else []
    done, missed = timeline_totals(recent)
    return RollingSummary(days=len(recent), done=done, missed=missed, completion_rate=success_rate(done, missed))


def best_day(timeline: Iterable[DaySummary]) -> Optional[DaySummary]:
    """Highest net (done - missed); the earliest date wins ties"""
    best = None
    for summary in timeline:
        if best is None or summary.net > best.net:
            best = summary
    return best


def compute_habit_metrics(habit: HabitRecord, records: Iterable[Record], today: date) -> HabitMetrics:
    timeline = build_timeline(records)
    done, missed = timeline_totals(timeline)
    return HabitMetrics(
        habit_id=habit.id,
        name=habit.title,
        category=habit.category,
        timeline=timeline,
        streak=compute_streak(timeline, today),
        success_rate=success_rate(done, missed),
        done_total=done,
        missed_total=missed,
        recent=rolling_summary(timeline),
        best_day=best_day(timeline),
    )


def merge_timelines(timelines: Iterable[List[DaySummary]]) -> List[DaySummary]:
    """Owner-wide daily trend: per-date sums across habits"""
    merged = {}
    for timeline in timelines:
        for summary in timeline:
            bucket = merged.setdefault(summary.date, DaySummary(date=summary.date))
            bucket.done += summary.done
            bucket.missed += summary.missed
    return [merged[day] for day in sorted(merged)]

# services/insights_service.py

"""
Multi-day planning insights and the progress analytics report.

Both reports are read-only: they pull rows through the store, reduce them
with the pure core modules and return plain dictionaries ready for JSON.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import pytz

from config import config
from core.aggregator import EntryAggregator, flatten
from core.database import DatabaseManager
from core.free_windows import find_free_windows_for_days, total_busy_minutes
from core.intervals import MINUTES_PER_DAY, effective_end, parse_time
from core.models import EntryKind, EventResult, FreeWindow, HabitMetrics, NotFoundError, format_minutes
from core.overlap import sweep_overlaps_by_day
from core.streaks import compute_habit_metrics, merge_timelines, success_rate
from services.schedule_service import ScheduleService
from utils.datetime_utils import date_range, today_local

logger = logging.getLogger(__name__)

LOW_PERFORMER_COUNT = 3
MIN_SUGGESTION_CONFIDENCE = 40
FALLBACK_CONFIDENCE = 60
LEADERBOARD_SIZE = 5
AUTO_PLAN_NOTE = "Created via Smart Scheduler"


def _rate_or_zero(rate: Optional[int]) -> int:
    return rate if rate is not None else 0


class InsightsService:
    """Smart-scheduler insights and progress analytics for one owner"""

    def __init__(self, store: DatabaseManager, today: Optional[date] = None):
        self.store = store
        self.aggregator = EntryAggregator(store)
        self._today = today

    @property
    def today(self) -> date:
        return self._today or today_local()

    def _require_owner(self, owner_id: int):
        if not self.store.owner_exists(owner_id):
            raise NotFoundError("User not found")

    # ===== METRICS =====

    def habit_metrics(self, owner_id: int, lookback_days: Optional[int] = None) -> List[HabitMetrics]:
        """Per-habit streak and success figures, habits ordered by title"""
        today = self.today
        since = None
        if lookback_days:
            since = (today - timedelta(days=lookback_days - 1)).isoformat()

        records_by_habit: Dict[int, list] = {}
        for record in self.store.list_progress(owner_id, since=since):
            records_by_habit.setdefault(record.habit_id, []).append(record)

        return [
            compute_habit_metrics(habit, records_by_habit.get(habit.id, []), today)
            for habit in self.store.list_habits(owner_id)
        ]

    # ===== INSIGHTS =====

    def insights(self, owner_id: int, days: Optional[int] = None) -> Dict[str, Any]:
        """
        Horizon report: overlaps, free windows and load per day for the next
        `days` days, plus suggestions that pair the weakest habits with open
        windows.
        """
        self._require_owner(owner_id)
        settings = config.scheduling
        horizon = days if days and days > 0 else settings.default_horizon_days
        horizon = min(horizon, settings.max_horizon_days)

        horizon_days = date_range(self.today, horizon)
        by_day = self.aggregator.for_owner(owner_id, horizon_days[0], horizon_days[-1])

        metrics = self.habit_metrics(owner_id, lookback_days=settings.analytics_lookback_days)
        metrics_by_habit = {metric.habit_id: metric for metric in metrics}

        overlaps = sweep_overlaps_by_day(by_day)
        free_windows = find_free_windows_for_days(by_day, days=horizon_days)
        entries = flatten(by_day)

        upcoming = []
        for entry in entries:
            item = entry.to_dict()
            metric = metrics_by_habit.get(entry.habit_id) if entry.kind == EntryKind.HABIT else None
            item["successRate"] = metric.success_rate if metric else None
            item["streak"] = metric.streak.to_dict() if metric else None
            upcoming.append(item)

        density = [
            {
                "date": day,
                "entries": len(by_day.get(day, [])),
                "minutes": total_busy_minutes(by_day.get(day, [])),
            }
            for day in horizon_days
        ]

        suggestions = self._suggestions(metrics, free_windows)

        logger.info(
            f"📊 Insights for owner {owner_id}: {len(entries)} sessions, "
            f"{len(overlaps)} overlaps, {len(free_windows)} free windows over {horizon} days"
        )

        return {
            "generatedAt": datetime.now(pytz.utc).isoformat(),
            "horizonDays": horizon,
            "summary": {
                "totalHabits": len(metrics),
                "scheduledSessions": len(entries),
                "overlaps": len(overlaps),
                "freeWindows": len(free_windows),
            },
            "habits": [metric.to_dict() for metric in metrics],
            "upcoming": upcoming,
            "overlaps": [pair.to_dict() for pair in overlaps],
            "freeWindows": [window.to_dict() for window in free_windows],
            "density": density,
            "suggestions": suggestions,
        }

    def _suggestions(self, metrics: List[HabitMetrics], free_windows: List[FreeWindow]) -> List[Dict[str, Any]]:
        """Give each of the three weakest habits its own long-enough window"""
        min_minutes = config.scheduling.suggestion_window_minutes
        weakest = sorted(metrics, key=lambda metric: _rate_or_zero(metric.success_rate))[:LOW_PERFORMER_COUNT]

        suggestions = []
        claimed = set()
        for metric in weakest:
            window = next(
                (
                    candidate for candidate in free_windows
                    if (candidate.day, candidate.start_minute) not in claimed
                    and candidate.duration >= min_minutes
                ),
                None,
            )
            if window is None:
                continue
            claimed.add((window.day, window.start_minute))

            rate = _rate_or_zero(metric.success_rate)
            if metric.success_rate is None:
                reason = (
                    f"No check-ins yet. Anchoring it in a free {window.duration}-minute block "
                    f"should help it get started."
                )
            else:
                reason = (
                    f"Success rate is {rate}%. Anchoring it in a free {window.duration}-minute block "
                    f"should boost consistency."
                )
            suggestions.append(self._suggestion(metric, window, max(MIN_SUGGESTION_CONFIDENCE, 100 - rate), reason))

        if not suggestions and free_windows and metrics:
            suggestions.append(self._suggestion(
                metrics[0], free_windows[0], FALLBACK_CONFIDENCE,
                "Prime window available. Convert it into focused progress.",
            ))

        return suggestions

    @staticmethod
    def _suggestion(metric: HabitMetrics, window: FreeWindow, confidence: int, reason: str) -> Dict[str, Any]:
        return {
            "habitId": metric.habit_id,
            "habitName": metric.name,
            "date": window.day,
            "start": format_minutes(window.start_minute),
            "end": format_minutes(window.end_minute),
            "durationMinutes": window.duration,
            "confidence": confidence,
            "reason": reason,
        }

    def auto_plan(self, owner_id: int, habit_id: int, day: str, start_time: str,
                  end_time: Optional[str] = None, notes: Optional[str] = None) -> EventResult:
        """Schedule one session of an existing habit, typically from a suggestion"""
        habit = self.store.get_habit(habit_id)
        if habit is None or habit.owner_id != owner_id:
            raise NotFoundError("Habit not found for this user")

        if not end_time:
            start = parse_time(start_time)
            end_time = format_minutes(min(effective_end(start, None), MINUTES_PER_DAY - 1))

        return ScheduleService(self.store, today=self._today).create_event({
            "ownerId": owner_id,
            "title": habit.title,
            "day": day,
            "startTime": start_time,
            "endTime": end_time,
            "repeat": "once",
            "notes": notes or AUTO_PLAN_NOTE,
        })

    # ===== PROGRESS ANALYTICS =====

    def progress_report(self, owner_id: int) -> Dict[str, Any]:
        """Lifetime per-habit statistics and an owner-wide summary"""
        self._require_owner(owner_id)
        metrics = self.habit_metrics(owner_id)

        total_done = sum(metric.done_total for metric in metrics)
        total_missed = sum(metric.missed_total for metric in metrics)
        daily_trend = merge_timelines(metric.timeline for metric in metrics)

        peak_day = None
        for summary in daily_trend:
            if peak_day is None or summary.done > peak_day.done:
                peak_day = summary

        leaders = sorted(
            (metric for metric in metrics if metric.streak.longest > 0),
            key=lambda metric: (-metric.streak.longest, -_rate_or_zero(metric.success_rate)),
        )
        streak_leader = None
        if leaders:
            streak_leader = {
                "habitId": leaders[0].habit_id,
                "habitName": leaders[0].name,
                "streak": leaders[0].streak.to_dict(),
            }

        leaderboard = [
            {
                "habitId": metric.habit_id,
                "habitName": metric.name,
                "successRate": metric.success_rate,
                "totalCheckIns": metric.total_checks,
                "currentStreak": metric.streak.current,
                "bestStreak": metric.streak.longest,
            }
            for metric in sorted(
                (metric for metric in metrics if metric.total_checks > 0),
                key=lambda metric: -_rate_or_zero(metric.success_rate),
            )[:LEADERBOARD_SIZE]
        ]

        return {
            "summary": {
                "totalHabits": len(metrics),
                "totalCheckIns": total_done + total_missed,
                "totalDone": total_done,
                "totalMissed": total_missed,
                "completionRate": success_rate(total_done, total_missed),
                "peakDay": peak_day.to_dict() if peak_day else None,
                "streakLeader": streak_leader,
                "habitLeaderboard": leaderboard,
                "dailyTrend": [summary.to_dict() for summary in daily_trend],
            },
            "habits": [metric.to_dict(include_timeline=True) for metric in metrics],
        }

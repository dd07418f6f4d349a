from datetime import timedelta

import pytest

from config import config
from core.models import EventStatus, NotFoundError
from services.insights_service import AUTO_PLAN_NOTE, FALLBACK_CONFIDENCE, InsightsService

from conftest import DAY, TODAY


def _day(offset):
    return (TODAY + timedelta(days=offset)).isoformat()


@pytest.fixture
def insights(database):
    return InsightsService(database, today=TODAY)


@pytest.fixture
def history(database, owner_id, habits):
    """Read done three days running, Morning Run done then missed, Meditate untracked"""
    for offset in (-2, -1, 0):
        database.append_progress(owner_id, habits["read"].id, "done", _day(offset))
    database.append_progress(owner_id, habits["run"].id, "done", _day(-2))
    database.append_progress(owner_id, habits["run"].id, "missed", _day(-1))
    return habits


# ===== INSIGHTS =====

def test_horizon_defaults_and_cap(insights, owner_id):
    assert insights.insights(owner_id)["horizonDays"] == config.scheduling.default_horizon_days

    report = insights.insights(owner_id, days=30)

    assert report["horizonDays"] == config.scheduling.max_horizon_days
    assert len(report["density"]) == config.scheduling.max_horizon_days
    assert report["density"][0] == {"date": DAY, "entries": 0, "minutes": 0}


def test_empty_days_are_fully_open(insights, owner_id):
    report = insights.insights(owner_id, days=3)

    assert report["freeWindows"] == [
        {"date": _day(offset), "start": "06:00", "end": "22:00", "durationMinutes": 960}
        for offset in range(3)
    ]
    assert report["summary"]["freeWindows"] == 3


def test_overlaps_and_upcoming(insights, database, owner_id, history):
    database.create_schedule_entry(owner_id, history["read"], _day(1), "21:00:00", "21:30:00", "daily")
    database.create_busy_entry(owner_id, "Dinner", _day(1), "21:15:00", "22:00:00", "once")
    database.create_busy_entry(owner_id, "Outside horizon", _day(5), "09:00:00", "10:00:00", "once")

    report = insights.insights(owner_id, days=2)

    assert report["summary"]["scheduledSessions"] == 2
    assert report["summary"]["overlaps"] == 1
    assert report["overlaps"][0]["overlapMinutes"] == 15
    assert [item["title"] for item in report["upcoming"]] == ["Read", "Dinner"]
    assert report["upcoming"][0]["successRate"] == 100
    assert report["upcoming"][0]["streak"] == {"current": 3, "best": 3}
    assert report["upcoming"][1]["successRate"] is None
    assert report["density"][1] == {"date": _day(1), "entries": 2, "minutes": 75}


def test_suggestions_pair_weakest_habits_with_distinct_windows(insights, database, owner_id, history):
    database.create_busy_entry(owner_id, "Work", DAY, "09:00:00", "10:00:00", "once")

    suggestions = insights.insights(owner_id, days=1)["suggestions"]

    assert [(s["habitName"], s["start"], s["end"], s["confidence"]) for s in suggestions] == [
        ("Meditate", "06:00", "09:00", 100),
        ("Morning Run", "10:00", "22:00", 50),
    ]
    assert suggestions[0]["reason"].startswith("No check-ins yet.")
    assert suggestions[1]["reason"] == (
        "Success rate is 50%. Anchoring it in a free 720-minute block should boost consistency."
    )


def test_suggestion_confidence_floor(insights, database, owner_id, habits):
    for _ in range(9):
        database.append_progress(owner_id, habits["run"].id, "done", DAY)
    database.append_progress(owner_id, habits["run"].id, "missed", DAY)
    database.create_busy_entry(owner_id, "Block", DAY, "06:00:00", "21:00:00", "once")

    suggestions = insights.insights(owner_id, days=3)["suggestions"]

    by_habit = {s["habitName"]: s for s in suggestions}
    assert by_habit["Morning Run"]["confidence"] == 40


def test_fallback_suggestion_when_no_window_is_long_enough(insights, owner_id, history, monkeypatch):
    monkeypatch.setattr(config.scheduling, "suggestion_window_minutes", 2000)

    suggestions = insights.insights(owner_id, days=1)["suggestions"]

    assert len(suggestions) == 1
    assert suggestions[0]["habitName"] == "Meditate"
    assert suggestions[0]["confidence"] == FALLBACK_CONFIDENCE
    assert suggestions[0]["reason"] == "Prime window available. Convert it into focused progress."


def test_no_suggestions_without_habits(insights, owner_id):
    assert insights.insights(owner_id, days=1)["suggestions"] == []


def test_reports_reject_unknown_owner(insights):
    with pytest.raises(NotFoundError):
        insights.insights(4242)
    with pytest.raises(NotFoundError):
        insights.progress_report(4242)


# ===== AUTO PLAN =====

def test_auto_plan_defaults_end_and_note(insights, database, owner_id, habits):
    result = insights.auto_plan(owner_id, habits["read"].id, DAY, "21:00")

    assert result.status == EventStatus.CREATED
    assert (result.created["startTime"], result.created["endTime"]) == ("21:00", "21:45")
    assert result.created["repeat"] == "once"
    assert database.list_schedule_rows(owner_id)[0].notes == AUTO_PLAN_NOTE


def test_auto_plan_clamps_end_before_midnight(insights, owner_id, habits):
    result = insights.auto_plan(owner_id, habits["read"].id, DAY, "23:30")
    assert result.created["endTime"] == "23:59"


def test_auto_plan_reports_conflicts(insights, database, owner_id, habits):
    database.create_busy_entry(owner_id, "Call", DAY, "21:00:00", "21:30:00", "once")

    result = insights.auto_plan(owner_id, habits["read"].id, DAY, "21:15", "21:45")

    assert result.status == EventStatus.CONFLICT


def test_auto_plan_rejects_foreign_habit(insights, database, habits):
    stranger = database.create_user(name="Stranger")
    with pytest.raises(NotFoundError):
        insights.auto_plan(stranger, habits["read"].id, DAY, "21:00")


# ===== PROGRESS REPORT =====

def test_progress_report_summary(insights, owner_id, history):
    summary = insights.progress_report(owner_id)["summary"]

    assert (summary["totalCheckIns"], summary["totalDone"], summary["totalMissed"]) == (5, 4, 1)
    assert summary["totalHabits"] == 3
    assert summary["completionRate"] == 80
    assert summary["peakDay"]["date"] == _day(-2)
    assert summary["streakLeader"]["habitName"] == "Read"
    assert summary["streakLeader"]["streak"] == {"current": 3, "best": 3}
    assert [item["habitName"] for item in summary["habitLeaderboard"]] == ["Read", "Morning Run"]
    assert [day["date"] for day in summary["dailyTrend"]] == [_day(-2), _day(-1), DAY]


def test_progress_report_per_habit_detail(insights, owner_id, history):
    habits = {item["habitName"]: item for item in insights.progress_report(owner_id)["habits"]}

    assert habits["Meditate"]["successRate"] is None
    assert habits["Meditate"]["productivity"] == []
    assert habits["Morning Run"]["successRate"] == 50
    assert habits["Morning Run"]["bestDay"]["date"] == _day(-2)


def test_progress_report_for_new_owner(insights, owner_id):
    summary = insights.progress_report(owner_id)["summary"]

    assert summary["completionRate"] is None
    assert summary["peakDay"] is None
    assert summary["streakLeader"] is None
    assert summary["habitLeaderboard"] == []

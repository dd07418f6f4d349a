import pytest
from fastapi.testclient import TestClient

from dashboard.app import create_app
from services.schedule_service import QUESTION_TITLE
from utils.datetime_utils import today_str


@pytest.fixture
def client(database):
    with TestClient(create_app(database=database, start_reminders=False)) as test_client:
        yield test_client


@pytest.fixture
def today():
    return today_str()


def _event(owner_id, day, **overrides):
    body = {"title": "Dentist", "day": day, "startTime": "09:00", "endTime": "10:00", "ownerId": owner_id}
    body.update(overrides)
    return body


# ===== HEALTH =====

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] is True
    assert data["service"] == "stephabit-scheduler"
    assert "X-Process-Time" in response.headers


# ===== EVENTS =====

def test_create_event_needs_info(client, owner_id, today):
    response = client.post("/api/schedules/events", json={"day": today, "ownerId": owner_id})

    assert response.status_code == 400
    assert response.json() == {"status": "NEEDS_INFO", "question": QUESTION_TITLE, "missing": ["title"]}


def test_create_event_created_then_conflict(client, owner_id, today):
    created = client.post("/api/schedules/events", json=_event(owner_id, today))
    assert created.status_code == 201
    assert created.json()["status"] == "CREATED"
    assert created.json()["table"] == "busy_schedules"

    conflict = client.post(
        "/api/schedules/events",
        json=_event(owner_id, today, title="Call", startTime="09:30", endTime="10:15"),
    )
    assert conflict.status_code == 409
    assert conflict.json() == {
        "status": "CONFLICT",
        "reason": "Conflicts with Dentist at 09:00-10:00.",
        "question": "Would you like to try 10:00-10:45?",
    }


def test_create_event_accepts_numeric_hours(client, owner_id, today, habits):
    response = client.post(
        "/api/schedules/events",
        json=_event(owner_id, today, title="Read", startTime=21, endTime="21:30"),
    )

    assert response.status_code == 201
    assert response.json()["table"] == "schedules"
    assert response.json()["startTime"] == "21:00"


# ===== DAY QUERY & TIMELINE =====

def test_day_query_with_candidate(client, database, owner_id, today):
    database.create_busy_entry(owner_id, "Standup", today, "09:00:00", "10:00:00", "daily")

    response = client.get(
        "/api/schedules/day",
        params={"ownerId": owner_id, "day": today, "candidateStart": "09:30", "candidateEnd": "10:15"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["day"] == today
    assert data["candidate"] == {"start": "09:30", "end": "10:15"}
    assert [entry["title"] for entry in data["overlaps"]] == ["Standup"]
    assert [(w["start"], w["end"]) for w in data["freeWindows"]] == [("06:00", "09:00"), ("10:00", "22:00")]


def test_day_query_candidate_without_end(client, owner_id, today):
    data = client.get(
        "/api/schedules/day", params={"ownerId": owner_id, "day": today, "candidateStart": "10:00"},
    ).json()

    assert data["candidate"] == {"start": "10:00", "end": "10:45"}
    assert data["overlaps"] == []


def test_day_query_rejects_bad_candidate(client, owner_id, today):
    response = client.get(
        "/api/schedules/day", params={"ownerId": owner_id, "day": today, "candidateStart": "late"},
    )

    assert response.status_code == 400
    assert response.json()["missing"] == ["candidateStart"]


def test_day_query_rejects_bad_day(client, owner_id):
    response = client.get("/api/schedules/day", params={"ownerId": owner_id, "day": "someday"})

    assert response.status_code == 400
    assert response.json()["missing"] == ["day"]


def test_day_query_requires_owner(client):
    response = client.get("/api/schedules/day")

    assert response.status_code == 400
    assert response.json()["missing"] == ["ownerId"]


def test_day_query_end_without_start(client, owner_id, today):
    response = client.get(
        "/api/schedules/day", params={"ownerId": owner_id, "day": today, "candidateEnd": "10:00"},
    )

    assert response.status_code == 400
    assert response.json()["missing"] == ["candidateStart"]


@pytest.mark.parametrize("path, params", [
    ("/api/schedules/day", {"ownerId": 4242}),
    ("/api/schedules/4242", {}),
    ("/api/insights", {"ownerId": 4242}),
    ("/api/analytics/progress", {"ownerId": 4242}),
])
def test_unknown_owner_is_not_found(client, path, params):
    response = client.get(path, params=params)

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_owner_timeline(client, database, owner_id, habits, today):
    database.create_busy_entry(owner_id, "Standup", today, "09:00:00", "10:00:00", "daily")
    database.create_schedule_entry(owner_id, habits["run"], today, "07:00:00", "07:30:00", "daily")

    data = client.get(f"/api/schedules/{owner_id}", params={"start": today, "end": today}).json()

    assert data["ownerId"] == owner_id
    assert data["total"] == 2
    assert [(entry["kind"], entry["title"]) for entry in data["entries"]] == [
        ("habit", "Morning Run"), ("custom", "Standup"),
    ]


def test_delete_entry(client, owner_id, today):
    entry_id = client.post("/api/schedules/events", json=_event(owner_id, today)).json()["id"]

    response = client.delete(f"/api/schedules/custom/{entry_id}", params={"ownerId": owner_id})
    assert response.status_code == 200
    assert response.json() == {"message": "Deleted", "kind": "custom", "id": entry_id}

    missing = client.delete(f"/api/schedules/custom/{entry_id}")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Schedule entry not found"}


# ===== INSIGHTS & ANALYTICS =====

def test_insights(client, owner_id, habits):
    data = client.get("/api/insights", params={"ownerId": owner_id, "days": 40}).json()

    assert data["horizonDays"] == 21
    assert data["summary"]["totalHabits"] == 3
    assert len(data["suggestions"]) == 3


def test_insights_rejects_zero_days(client, owner_id):
    assert client.get("/api/insights", params={"ownerId": owner_id, "days": 0}).status_code == 400


def test_auto_plan(client, owner_id, habits, today):
    response = client.post("/api/insights/auto-plan", json={
        "userId": owner_id, "habitId": habits["meditate"].id, "day": today, "startTime": "06:00",
    })

    assert response.status_code == 201
    assert response.json()["title"] == "Meditate"
    assert response.json()["endTime"] == "06:45"


def test_auto_plan_unknown_habit(client, owner_id, today):
    response = client.post("/api/insights/auto-plan", json={
        "userId": owner_id, "habitId": 999, "day": today, "startTime": "06:00",
    })

    assert response.status_code == 404
    assert response.json() == {"error": "Habit not found for this user"}


def test_progress_analytics(client, owner_id, habits):
    client.post(f"/api/progress/{habits['read'].id}/log", json={"userId": owner_id, "status": "done"})

    data = client.get("/api/analytics/progress", params={"ownerId": owner_id}).json()

    assert data["summary"]["totalCheckIns"] == 1
    assert data["summary"]["completionRate"] == 100
    assert data["summary"]["streakLeader"]["habitName"] == "Read"


# ===== PROGRESS =====

def test_log_progress(client, owner_id, habits, today):
    response = client.post(
        f"/api/progress/{habits['run'].id}/log",
        json={"userId": owner_id, "status": "missed", "reason": "Rain"},
    )

    assert response.status_code == 201
    assert response.json()["message"] == "Logged"
    assert response.json()["row"]["date"] == today

    records = client.get(f"/api/progress/today/{owner_id}").json()
    assert [(record["habit_id"], record["outcome"]) for record in records] == [(habits["run"].id, "missed")]


def test_log_progress_rejects_unknown_status(client, owner_id, habits):
    response = client.post(f"/api/progress/{habits['run'].id}/log", json={"userId": owner_id, "status": "skip"})

    assert response.status_code == 400
    assert response.json()["missing"] == ["status"]


def test_log_progress_for_foreign_habit(client, database, habits):
    stranger = database.create_user(name="Stranger")

    response = client.post(f"/api/progress/{habits['run'].id}/log", json={"userId": stranger, "status": "done"})

    assert response.status_code == 404
    assert response.json() == {"error": "Habit not found"}


def test_set_progress_count(client, owner_id, habits, today):
    url = f"/api/progress/{habits['run'].id}/logs"

    response = client.put(url, json={"userId": owner_id, "status": "done", "targetCount": 2})

    assert response.status_code == 200
    assert response.json() == {"message": "Progress updated", "counts": {"done": 2, "missed": 0}, "date": today}

    negative = client.put(url, json={"userId": owner_id, "status": "done", "targetCount": -1})
    assert negative.status_code == 400
    assert negative.json()["missing"] == ["targetCount"]


# ===== SETTINGS =====

def test_update_reminder_setting(client, database, owner_id):
    response = client.put(
        f"/api/settings/{owner_id}/reminder",
        json={"dailyReminderTime": "08:00", "timezone": "Asia/Yerevan"},
    )

    assert response.status_code == 200
    assert response.json()["emailAlerts"] is True
    assert database.list_reminder_settings()[0].daily_reminder_time == "08:00"


def test_update_reminder_setting_validation(client, owner_id):
    response = client.put(f"/api/settings/{owner_id}/reminder", json={"dailyReminderTime": "25:00"})
    assert response.status_code == 400

    unknown = client.put("/api/settings/999/reminder", json={"dailyReminderTime": "08:00"})
    assert unknown.status_code == 404

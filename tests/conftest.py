from datetime import date

import pytest

from core.database import DatabaseManager
from core.intervals import parse_time
from core.models import AggregatedEntry, CustomRef, HabitRef

# A Wednesday
TODAY = date(2025, 11, 5)
DAY = TODAY.isoformat()


@pytest.fixture
def database():
    manager = DatabaseManager("sqlite://")
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def owner_id(database):
    return database.create_user(name="Ani", email="ani@example.com")


@pytest.fixture
def habits(database, owner_id):
    return {
        "run": database.create_habit(owner_id, "Morning Run", "health"),
        "read": database.create_habit(owner_id, "Read", "learning"),
        "meditate": database.create_habit(owner_id, "Meditate", "health"),
    }


@pytest.fixture
def make_entry():
    """Build an AggregatedEntry from HH:MM strings"""
    counter = {"id": 0}

    def _make(start, end, title="Busy", day=DAY, habit_id=None):
        counter["id"] += 1
        source = HabitRef(habit_id) if habit_id is not None else CustomRef(title)
        return AggregatedEntry(
            id=counter["id"],
            day=day,
            start_minute=parse_time(start),
            end_minute=parse_time(end),
            title=title,
            source=source,
        )

    return _make

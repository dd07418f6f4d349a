from core.models import Interval
from core.overlap import detect_overlaps, first_conflict, sweep_overlaps, sweep_overlaps_by_day


def test_candidate_inside_existing_entry_conflicts(make_entry):
    existing = make_entry("09:00", "10:00", title="Standup")
    candidate = Interval(570, 615)  # 09:30-10:15

    assert detect_overlaps(candidate, [existing]) == [existing]


def test_candidate_touching_existing_end_is_free(make_entry):
    existing = make_entry("09:00", "10:00")
    assert detect_overlaps(Interval(600, 630), [existing]) == []


def test_first_conflict_follows_timeline_order(make_entry):
    late = make_entry("11:00", "12:00", title="Late")
    early = make_entry("09:00", "10:30", title="Early")

    assert first_conflict(Interval(600, 700), [late, early]) is early
    assert first_conflict(Interval(720, 780), [late, early]) is None


def test_sweep_reports_each_overlap_against_furthest_reaching_entry(make_entry):
    long_block = make_entry("09:00", "11:00", title="Workshop")
    nested = make_entry("09:30", "10:00", title="Call")
    tail = make_entry("10:30", "11:30", title="Lunch prep")

    pairs = sweep_overlaps([tail, nested, long_block])

    assert [(pair.first.title, pair.second.title, pair.overlap_minutes) for pair in pairs] == [
        ("Workshop", "Call", 30),
        ("Workshop", "Lunch prep", 30),
    ]


def test_sweep_ignores_touching_entries(make_entry):
    pairs = sweep_overlaps([make_entry("08:00", "09:00"), make_entry("09:00", "10:00")])
    assert pairs == []


def test_sweep_empty_and_single(make_entry):
    assert sweep_overlaps([]) == []
    assert sweep_overlaps([make_entry("09:00", "10:00")]) == []


def test_sweep_by_day_keeps_days_apart(make_entry):
    by_day = {
        "2025-11-05": [make_entry("09:00", "10:00", day="2025-11-05")],
        "2025-11-06": [
            make_entry("09:00", "10:00", day="2025-11-06"),
            make_entry("09:45", "10:15", day="2025-11-06"),
        ],
    }

    pairs = sweep_overlaps_by_day(by_day)

    assert len(pairs) == 1
    assert pairs[0].day == "2025-11-06"
    assert pairs[0].to_dict()["overlapMinutes"] == 15

from core.free_windows import (
    find_alternative_slots, find_free_windows, find_free_windows_for_days, total_busy_minutes,
)

from conftest import DAY


def _labels(windows):
    return [(window.label(), window.duration) for window in windows]


def test_single_entry_splits_the_day(make_entry):
    windows = find_free_windows([make_entry("09:00", "10:00")], DAY)
    assert _labels(windows) == [("06:00-09:00", 180), ("10:00-22:00", 720)]


def test_empty_day_is_fully_open():
    assert _labels(find_free_windows([], DAY)) == [("06:00-22:00", 960)]


def test_short_gaps_are_dropped(make_entry):
    entries = [make_entry("06:00", "09:00"), make_entry("09:15", "22:00")]
    assert find_free_windows(entries, DAY) == []


def test_entries_outside_day_bounds_are_clipped(make_entry):
    entries = [make_entry("05:00", "07:00"), make_entry("21:30", "23:30")]
    assert _labels(find_free_windows(entries, DAY)) == [("07:00-21:30", 870)]


def test_overlapping_entries_do_not_reopen_the_gap(make_entry):
    entries = [make_entry("09:00", "12:00"), make_entry("10:00", "11:00")]
    assert _labels(find_free_windows(entries, DAY)) == [("06:00-09:00", 180), ("12:00-22:00", 600)]


def test_windows_are_disjoint_from_entries_and_long_enough(make_entry):
    entries = [
        make_entry("06:10", "07:00"),
        make_entry("07:15", "08:00"),
        make_entry("08:30", "10:00"),
        make_entry("09:45", "13:00"),
        make_entry("17:00", "17:10"),
        make_entry("21:50", "22:30"),
    ]
    windows = find_free_windows(entries, DAY, min_duration=20)

    assert windows
    for window in windows:
        assert window.duration >= 20
        for entry in entries:
            assert not window.interval.overlaps(entry.interval)


def test_multi_day_includes_days_without_entries(make_entry):
    by_day = {"2025-11-06": [make_entry("06:00", "21:00", day="2025-11-06")]}
    windows = find_free_windows_for_days(by_day, days=["2025-11-06", "2025-11-05"])

    assert [(window.day, window.label()) for window in windows] == [
        ("2025-11-05", "06:00-22:00"),
        ("2025-11-06", "21:00-22:00"),
    ]


def test_alternative_slots_one_per_gap(make_entry):
    entries = [make_entry("09:00", "10:00"), make_entry("11:00", "12:00")]
    slots = find_alternative_slots(entries, DAY, duration=45, search_start=600)
    assert [slot.label() for slot in slots] == ["10:00-10:45", "12:00-12:45"]


def test_alternative_slots_respect_limit_and_gap_size(make_entry):
    entries = [make_entry("09:00", "10:00"), make_entry("10:30", "11:00"), make_entry("13:00", "14:00")]

    slots = find_alternative_slots(entries, DAY, duration=60, search_start=600, limit=1)

    assert [slot.label() for slot in slots] == ["11:00-12:00"]


def test_alternative_slots_never_cross_midnight(make_entry):
    entries = [make_entry("23:00", "23:50")]
    assert find_alternative_slots(entries, DAY, duration=15, search_start=1430) == []


def test_alternative_slots_zero_duration():
    assert find_alternative_slots([], DAY, duration=0, search_start=0) == []


def test_total_busy_minutes(make_entry):
    assert total_busy_minutes([make_entry("09:00", "10:00"), make_entry("09:30", "10:15")]) == 105

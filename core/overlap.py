"""
Overlap detection over aggregated entries (half-open intervals).
"""

from typing import Iterable, List, Mapping, Optional

from core.aggregator import sort_timeline
from core.intervals import overlaps
from core.models import AggregatedEntry, Interval, OverlapPair


def detect_overlaps(candidate: Interval, entries: Iterable[AggregatedEntry]) -> List[AggregatedEntry]:
    """Every entry whose interval intersects the candidate, in timeline order"""
    return [entry for entry in sort_timeline(entries) if overlaps(candidate, entry.interval)]


def first_conflict(candidate: Interval, entries: Iterable[AggregatedEntry]) -> Optional[AggregatedEntry]:
    matches = detect_overlaps(candidate, entries)
    return matches[0] if matches else None


def sweep_overlaps(entries: Iterable[AggregatedEntry]) -> List[OverlapPair]:
    """
    One left-to-right pass over a single day's entries.

    `active` is the entry reaching furthest to the right so far; any entry
    starting before its end is reported against it.
    """
    ordered = sort_timeline(entries)
    pairs: List[OverlapPair] = []
    active: Optional[AggregatedEntry] = None

    for entry in ordered:
        if active is None:
            active = entry
            continue
        if entry.start_minute < active.end_minute:
            pairs.append(OverlapPair(
                day=entry.day,
                first=active,
                second=entry,
                overlap_minutes=min(active.end_minute, entry.end_minute) - entry.start_minute,
            ))
        if entry.end_minute > active.end_minute:
            active = entry

    return pairs


def sweep_overlaps_by_day(by_day: Mapping[str, List[AggregatedEntry]]) -> List[OverlapPair]:
    pairs: List[OverlapPair] = []
    for day in sorted(by_day):
        pairs.extend(sweep_overlaps(by_day[day]))
    return pairs

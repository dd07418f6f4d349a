# services/availability_service.py

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.aggregator import EntryAggregator, flatten
from core.database import DatabaseManager
from core.free_windows import find_free_windows
from core.intervals import effective_end, parse_optional_time, parse_time, resolve_day
from core.models import AggregatedEntry, FreeWindow, Interval, NotFoundError, OverlapPair, ValidationError, format_minutes
from core.overlap import detect_overlaps, sweep_overlaps

logger = logging.getLogger(__name__)


@dataclass
class DayAvailability:
    """Answer to a day query"""
    day: str
    entries: List[AggregatedEntry] = field(default_factory=list)
    overlaps: List[AggregatedEntry] = field(default_factory=list)
    free_windows: List[FreeWindow] = field(default_factory=list)
    internal_overlaps: List[OverlapPair] = field(default_factory=list)
    candidate: Optional[Interval] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "candidate": (
                {"start": format_minutes(self.candidate.start), "end": format_minutes(self.candidate.end)}
                if self.candidate else None
            ),
            "entries": [entry.to_dict() for entry in self.entries],
            "overlaps": [entry.to_dict() for entry in self.overlaps],
            "freeWindows": [window.to_dict() for window in self.free_windows],
            "internalOverlaps": [pair.to_dict() for pair in self.internal_overlaps],
        }


class AvailabilityService:
    """Day query: what a candidate collides with and what is still open"""

    def __init__(self, store: DatabaseManager):
        self.store = store
        self.aggregator = EntryAggregator(store)

    def _require_owner(self, owner_id: int):
        if not self.store.owner_exists(owner_id):
            raise NotFoundError("User not found")

    def day_availability(self, owner_id: int, day, candidate_start=None,
                         candidate_end=None) -> DayAvailability:
        """
        Entries, free windows and (when a candidate start is given) the
        entries overlapping the candidate. A candidate without an end gets
        the default session length.
        """
        day = resolve_day(day)
        self._require_owner(owner_id)
        entries = self.aggregator.for_day(owner_id, day)

        has_start = candidate_start is not None and str(candidate_start).strip() != ""
        has_end = candidate_end is not None and str(candidate_end).strip() != ""
        if has_end and not has_start:
            raise ValidationError("candidateEnd requires candidateStart", field_name="candidateStart")

        candidate = None
        overlapping: List[AggregatedEntry] = []
        if has_start:
            start = parse_time(candidate_start, field_name="candidateStart")
            end = parse_optional_time(candidate_end)
            candidate = Interval(start, end if end is not None else effective_end(start, None))
            overlapping = detect_overlaps(candidate, entries)

        result = DayAvailability(
            day=day,
            entries=entries,
            overlaps=overlapping,
            free_windows=find_free_windows(entries, day),
            internal_overlaps=sweep_overlaps(entries),
            candidate=candidate,
        )
        logger.debug(
            f"Day query owner={owner_id} day={day}: {len(entries)} entries, "
            f"{len(overlapping)} overlaps, {len(result.free_windows)} windows"
        )
        return result

    def timeline(self, owner_id: int, start_day: Optional[str] = None,
                 end_day: Optional[str] = None) -> List[AggregatedEntry]:
        """Merged chronological timeline across both entry kinds"""
        start_day = resolve_day(start_day) if start_day else None
        end_day = resolve_day(end_day) if end_day else None
        self._require_owner(owner_id)
        return flatten(self.aggregator.for_owner(owner_id, start_day, end_day))

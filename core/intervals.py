"""
Interval model & normalizer.

Day and time tokens arrive as loosely formatted strings (or as date/time
objects when read back from the store) and are turned into canonical
minute-of-day integers and ISO dates here. Everything downstream works on
integers in [0, 1440).
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from config import config, get_timezone
from core.models import Interval, InvalidDate, InvalidTimeFormat, format_minutes

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?(?::(\d{2}))?$")
_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:[t ].*)?$")

TimeToken = Union[str, time, None]
DayToken = Union[str, date, None]


def _split_time(token: TimeToken, field_name: str):
    if isinstance(token, time):
        return token.hour, token.minute, token.second
    if token is None:
        raise InvalidTimeFormat(token, field_name)

    match = _TIME_RE.match(str(token).strip())
    if not match:
        raise InvalidTimeFormat(token, field_name)

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise InvalidTimeFormat(token, field_name)
    return hours, minutes, seconds


def parse_time(token: TimeToken, field_name: str = "startTime") -> int:
    """H, H:MM or H:MM:SS -> minute of day (0..1439). Seconds are dropped."""
    hours, minutes, _ = _split_time(token, field_name)
    return hours * 60 + minutes


def canonical_time(token: TimeToken, field_name: str = "startTime") -> str:
    """Storage form HH:MM:SS"""
    hours, minutes, seconds = _split_time(token, field_name)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_optional_time(token: TimeToken) -> Optional[int]:
    """Like parse_time but blank values map to None"""
    if token is None or (isinstance(token, str) and not token.strip()):
        return None
    return parse_time(token, field_name="endTime")


def resolve_day(token: DayToken, today: Optional[date] = None) -> str:
    """
    Literal date or the relative tokens "today"/"tomorrow" -> YYYY-MM-DD.

    Relative tokens are evaluated in the configured timezone unless `today`
    is passed explicitly.
    """
    if isinstance(token, datetime):
        return token.date().isoformat()
    if isinstance(token, date):
        return token.isoformat()
    if token is None:
        raise InvalidDate(token)

    normalized = str(token).strip().lower()
    if not normalized:
        raise InvalidDate(token)

    if normalized in ("today", "tomorrow"):
        base = today or datetime.now(get_timezone()).date()
        if normalized == "tomorrow":
            base += timedelta(days=1)
        return base.isoformat()

    match = _DATE_RE.match(normalized)
    if not match:
        raise InvalidDate(token)
    try:
        return date.fromisoformat(match.group(1)).isoformat()
    except ValueError:
        raise InvalidDate(token)


def effective_end(start_minute: int, end_minute: Optional[int],
                  default_duration: Optional[int] = None) -> int:
    """
    End used for overlap/free-window math. A missing (or non-positive)
    end gets the default session length; the result is never persisted.
    """
    if end_minute is not None and end_minute > start_minute:
        return end_minute
    if default_duration is None:
        default_duration = config.scheduling.default_duration_minutes
    return start_minute + default_duration


def to_interval(start: TimeToken, end: TimeToken = None,
                default_duration: Optional[int] = None) -> Interval:
    start_minute = parse_time(start)
    return Interval(start_minute, effective_end(start_minute, parse_optional_time(end), default_duration))


def overlaps(a: Interval, b: Interval) -> bool:
    """Half-open overlap: touching endpoints do not count"""
    return a.start < b.end and b.start < a.end


__all__ = [
    "MINUTES_PER_DAY",
    "parse_time",
    "parse_optional_time",
    "canonical_time",
    "resolve_day",
    "effective_end",
    "to_interval",
    "overlaps",
    "format_minutes",
]

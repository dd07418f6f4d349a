from datetime import datetime, date, timedelta
from typing import List, Optional

from config import get_timezone


def now_local(tz_name: Optional[str] = None) -> datetime:
    return datetime.now(get_timezone(tz_name))


def today_local(tz_name: Optional[str] = None) -> date:
    return now_local(tz_name).date()


def today_str(tz_name: Optional[str] = None) -> str:
    return today_local(tz_name).isoformat()


def date_range(start: date, days: int) -> List[str]:
    """ISO dates for `days` consecutive days starting at `start`"""
    return [(start + timedelta(days=offset)).isoformat() for offset in range(days)]

"""
Date helpers for scheduling and list grouping.
"""

import re
import datetime as dt
from typing import Any, Dict, Iterable, List, Optional

from .formatting import format_long_date

# Fixed-date public holidays (MM-DD), office closed
HOLIDAYS = [
    "01-01", "01-29", "04-01", "04-09", "04-17",
    "04-18", "04-19", "05-01", "06-07", "06-12",
    "08-21", "08-25", "10-31", "11-01", "11-30",
    "12-08", "12-24", "12-25", "12-30", "12-31",
]

_TIME_24H = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
_TIME_12H = re.compile(r"^(0?[1-9]|1[0-2]):([0-5][0-9])\s*([AP]M)$", re.IGNORECASE)


def to_datetime(value: Any) -> Optional[dt.datetime]:
    """Coerce a stored timestamp (datetime, date, epoch seconds, ISO string)."""
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        return dt.datetime.fromtimestamp(value, dt.timezone.utc).replace(tzinfo=None)
    if isinstance(value, str) and value.strip():
        text = value.strip().replace("Z", "+00:00")
        try:
            parsed = dt.datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return parsed
    return None


def to_date(value: Any) -> Optional[dt.date]:
    moment = to_datetime(value)
    return moment.date() if moment else None


def today() -> dt.date:
    return dt.date.today()


def is_past_date(value: Any, reference: Optional[dt.date] = None) -> bool:
    day = to_date(value)
    if day is None:
        return False
    return day < (reference or today())


def is_weekend(value: Any) -> bool:
    day = to_date(value)
    return day is not None and day.weekday() >= 5


def is_holiday(value: Any) -> bool:
    day = to_date(value)
    return day is not None and day.strftime("%m-%d") in HOLIDAYS


def is_date_unavailable(value: Any, reference: Optional[dt.date] = None) -> bool:
    if to_date(value) is None:
        return False
    return is_past_date(value, reference) or is_weekend(value) or is_holiday(value)


def is_same_day(a: Any, b: Any) -> bool:
    da, db = to_date(a), to_date(b)
    return da is not None and da == db


def is_valid_time(value: str) -> bool:
    return bool(value) and bool(_TIME_24H.match(value))


def time_to_minutes(value: str) -> int:
    hours, minutes = (int(p) for p in value.split(":"))
    return hours * 60 + minutes


def has_time_conflict(existing_times: Iterable[str], new_time: str, buffer_minutes: int = 30) -> bool:
    new_minutes = time_to_minutes(new_time)
    return any(abs(new_minutes - time_to_minutes(t)) < buffer_minutes for t in existing_times)


def parse_time_12h(value: Optional[str]) -> Optional[dt.time]:
    """Parse "9:30 AM" style times."""
    if not value:
        return None
    match = _TIME_12H.match(value.strip())
    if not match:
        return None
    hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    hour = hour % 12 + (12 if meridiem == "PM" else 0)
    return dt.time(hour, minute)


def time_slot(value: Optional[str]) -> str:
    parsed = parse_time_12h(value)
    if parsed is None and value and is_valid_time(value):
        parsed = dt.time(*(int(p) for p in value.split(":")))
    if parsed is None or parsed.hour < 12:
        return "Morning"
    return "Afternoon"


def format_time_12h(moment: dt.time) -> str:
    hour12 = moment.hour % 12 or 12
    return f"{hour12}:{moment.minute:02d} {'PM' if moment.hour >= 12 else 'AM'}"


def group_by_date(items: Iterable[Dict[str, Any]], field: str = "createdAt") -> Dict[str, List[Dict[str, Any]]]:
    """Bucket items by calendar day, keyed by long date string, in input order."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for item in items:
        day = to_date(item.get(field))
        if day is None:
            continue
        grouped.setdefault(format_long_date(day), []).append(item)
    return grouped


def filter_by_date(items: Iterable[Dict[str, Any]], day: Any, field: str = "createdAt") -> List[Dict[str, Any]]:
    target = to_date(day)
    if target is None:
        return list(items)
    return [item for item in items if to_date(item.get(field)) == target]


def calculate_stats(items: Iterable[Dict[str, Any]], now: Optional[dt.datetime] = None,
                    field: str = "createdAt") -> Dict[str, int]:
    """Counts for today, yesterday, last seven days, this month and in total."""
    now = now or dt.datetime.utcnow()
    start_today = dt.datetime(now.year, now.month, now.day)
    start_yesterday = start_today - dt.timedelta(days=1)
    start_week = start_today - dt.timedelta(days=7)

    items = list(items)
    stats = {"today": 0, "yesterday": 0, "thisWeek": 0, "thisMonth": 0, "total": len(items)}

    for item in items:
        moment = to_datetime(item.get(field))
        if moment is None:
            continue
        if moment >= start_today:
            stats["today"] += 1
        if start_yesterday <= moment < start_today:
            stats["yesterday"] += 1
        if moment >= start_week:
            stats["thisWeek"] += 1
        if moment.year == now.year and moment.month == now.month:
            stats["thisMonth"] += 1

    return stats

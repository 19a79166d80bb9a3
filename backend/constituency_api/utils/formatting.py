"""
Display helpers: relative times, peso amounts, status text and badge colours.
"""

import datetime as dt
from typing import Any, Optional, Union

DEFAULT_COLOR = "#9E9E9E"

MEDICAL_STATUS_COLORS = {
    "pending": "#FF9800",
    "approved": "#4CAF50",
    "rejected": "#F44336",
}

PROJECT_STATUS_COLORS = {
    "active": "#4CAF50",
    "inactive": "#F44336",
    "completed": "#2196F3",
}

CONCERN_STATUS_COLORS = {
    "pending": "#FFC107",
    "in progress": "#2196F3",
    "resolved": "#4CAF50",
}

CONCERN_CATEGORY_COLORS = {
    "road": "#FF9800",
    "garbage": "#795548",
    "water": "#2196F3",
    "electricity": "#FFC107",
}

APPOINTMENT_STATUS_COLORS = {
    "Pending": "#FFA000",
    "Confirmed": "#28a745",
    "Cancelled": "#dc3545",
    "Completed": "#007bff",
    "Rejected": "#6c757d",
}

PRIORITY_COLORS = {
    "High": "#FF4444",
    "Medium": "#FFBB33",
    "Low": "#00C851",
}

PRIORITY_TEXT = {
    "High": "Urgent",
    "Medium": "Important",
    "Low": "Regular",
}

_UNITS = [
    ("year", 31536000),
    ("month", 2592000),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
]


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'} ago"


def format_time_ago(when: Optional[dt.datetime], now: Optional[dt.datetime] = None,
                    just_now: bool = False) -> str:
    """Relative age of a timestamp, e.g. "3 days ago".

    `just_now` switches the sub-minute wording to "Just now" (dashboard feed).
    """
    if when is None:
        return "Unknown time" if just_now else "Unknown date"
    now = now or dt.datetime.utcnow()
    seconds = int((now - when).total_seconds())

    for unit, size in _UNITS:
        interval = seconds // size
        if interval >= 1:
            return _plural(interval, unit)

    if just_now:
        return "Just now"
    return _plural(max(seconds, 0), "second")


def format_currency(amount: Any) -> str:
    """Format a peso amount, e.g. ₱1,250,000.00."""
    try:
        value = float(amount or 0)
    except (TypeError, ValueError):
        value = 0.0
    sign = "-" if value < 0 else ""
    return f"{sign}₱{abs(value):,.2f}"


def format_status_text(status: Optional[str]) -> str:
    if not status:
        return "Unknown"
    lower = status.lower()
    return lower[:1].upper() + lower[1:]


def medical_status_color(status: Optional[str]) -> str:
    if not status:
        return DEFAULT_COLOR
    return MEDICAL_STATUS_COLORS.get(status.lower(), DEFAULT_COLOR)


def project_status_color(status: Optional[str]) -> str:
    if not status:
        return DEFAULT_COLOR
    return PROJECT_STATUS_COLORS.get(status.lower(), DEFAULT_COLOR)


def concern_status_color(status: Optional[str]) -> str:
    if not status:
        return "#757575"
    return CONCERN_STATUS_COLORS.get(status.lower(), "#757575")


def concern_category_color(category: Optional[str]) -> str:
    if not category:
        return "#9C27B0"
    return CONCERN_CATEGORY_COLORS.get(category.lower(), "#9C27B0")


def appointment_status_color(status: Optional[str]) -> str:
    return APPOINTMENT_STATUS_COLORS.get(status or "", DEFAULT_COLOR)


def priority_color(priority: Optional[str]) -> str:
    return PRIORITY_COLORS.get(priority or "", PRIORITY_COLORS["Low"])


def priority_text(priority: Optional[str]) -> str:
    return PRIORITY_TEXT.get(priority or "", PRIORITY_TEXT["Low"])


def format_long_date(value: Union[dt.date, dt.datetime]) -> str:
    """October 18, 2026"""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_appointment_datetime(date_value: Any, time_value: str) -> str:
    """Oct 18, 2026 at 9:00 AM; falls back to the bare time on a bad date."""
    from .dates import to_date

    day = to_date(date_value)
    if day is None:
        return time_value
    return f"{day.strftime('%b')} {day.day}, {day.year} at {time_value}"

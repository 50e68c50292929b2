# services/api/core/dates.py
"""
Date helpers for Sheets cells.

Writers stamp timestamps as ``dd/mm/YYYY HH:MM:SS`` in the configured
timezone. Readers have to cope with everything that ends up in a sheet:
that display format, ISO 8601, ``YYYY-MM-DDTHH:MM`` from datetime-local
inputs, a leading apostrophe, and raw Sheets serial numbers.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

DISPLAY_FORMAT = "%d/%m/%Y %H:%M:%S"
DEFAULT_TIMEZONE = "Asia/Kolkata"

# Google Sheets day 0
_SERIAL_EPOCH = datetime(1899, 12, 30)

_DMY_RE = re.compile(
    r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})(?:[ ,T]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?"
)
_LOCAL_INPUT_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2})(?::(\d{2}))?$")

Clock = Callable[[], datetime]


def make_clock(tz_name: str = DEFAULT_TIMEZONE) -> Clock:
    """Wall clock in ``tz_name`` returning naive local datetimes."""
    tz = ZoneInfo(tz_name)

    def _now() -> datetime:
        return datetime.now(tz).replace(tzinfo=None, microsecond=0)

    return _now


def format_sheet_datetime(dt: datetime) -> str:
    return dt.strftime(DISPLAY_FORMAT)


def serial_to_datetime(serial: float) -> datetime:
    return _SERIAL_EPOCH + timedelta(days=float(serial))


def parse_sheet_date(value: Any) -> Optional[datetime]:
    """
    Parse whatever a date cell holds. Returns a naive datetime or None;
    never raises. Ambiguous ``a/b/YYYY`` strings are read as day/month.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        try:
            return serial_to_datetime(value)
        except OverflowError:
            return None

    s = str(value).strip()
    if s.startswith("'"):
        s = s[1:].strip()
    if not s:
        return None

    m = _DMY_RE.match(s)
    if m:
        day, month, year, hh, mm, ss = m.groups()
        try:
            return datetime(
                int(year), int(month), int(day),
                int(hh or 0), int(mm or 0), int(ss or 0),
            )
        except ValueError:
            return None

    iso = s[:-1] + "+00:00" if s.endswith("Z") else s
    try:
        dt = datetime.fromisoformat(iso)
    except ValueError:
        try:
            return serial_to_datetime(float(s))
        except (ValueError, OverflowError):
            return None
    if dt.tzinfo is not None:
        dt = dt.replace(tzinfo=None)
    return dt


def format_due_date(value: Any) -> Optional[str]:
    """
    Normalise an incoming due date to the display format.

    ``YYYY-MM-DDTHH:MM`` (datetime-local) is taken as local wall time;
    values already in display format are returned untouched.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if re.match(r"^\d{2}/\d{2}/\d{4} \d{2}:\d{2}:\d{2}$", s):
        return s
    m = _LOCAL_INPUT_RE.match(s)
    if m:
        year, month, day, hh, mm, ss = m.groups()
        return f"{day}/{month}/{year} {hh}:{mm}:{ss or '00'}"
    dt = parse_sheet_date(s)
    return format_sheet_datetime(dt) if dt else None


def status_for_due_date(due: Any, now: datetime, *, compare_time: bool = False) -> str:
    """
    Derive the schedule status of an open item from its due date.

    No (or unreadable) due date -> "pending"; due day before today ->
    "overdue"; due today -> "pending"; later -> "planned". With
    ``compare_time`` a due moment already in the past counts as overdue
    even on the same day.
    """
    dt = parse_sheet_date(due)
    if dt is None:
        return "pending"
    if compare_time and dt < now:
        return "overdue"
    if dt.date() < now.date():
        return "overdue"
    if dt.date() == now.date():
        return "pending"
    return "planned"


def sort_timestamp(value: Any) -> float:
    """Sort key for date cells; unparsable values sort as oldest."""
    dt = parse_sheet_date(value)
    if dt is None:
        return float("-inf")
    return (dt - _SERIAL_EPOCH).total_seconds()

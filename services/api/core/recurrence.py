# services/api/core/recurrence.py
"""
Checklist recurrence: expand a start date and a frequency into the dated
instances created up front.

Weekday numbers follow the form payloads: 0=Sunday, 1=Monday ... 6=Saturday.
Selected dates are "YYYY-MM-DD" strings; monthly uses only their day,
quarterly and yearly their month and day (always in the start's year).
"""
from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from .errors import ValidationError

logger = logging.getLogger(__name__)

FREQUENCIES = ("daily", "weekly", "monthly", "quarterly", "yearly")

_SUNDAY = 6  # datetime.weekday()


def form_weekday(dt: date) -> int:
    """Python weekday (Mon=0) -> form weekday (Sun=0)."""
    return (dt.weekday() + 1) % 7


def _parse_selected(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid selected date: {value!r}", field="selected_dates")


def _on_day(start: datetime, year: int, month: int, day: int) -> datetime:
    # day 31 in a 30-day month lands on the month's last day
    last = calendar.monthrange(year, month)[1]
    return start.replace(year=year, month=month, day=min(day, last))


def _sunday_to_saturday(dt: datetime) -> datetime:
    return dt - timedelta(days=1) if dt.weekday() == _SUNDAY else dt


def dates_for_frequency(
    start: datetime,
    frequency: str,
    weekly_days: Optional[Iterable[int]] = None,
    selected_dates: Optional[Iterable] = None,
) -> List[datetime]:
    """
    Dated instances for one checklist, sorted ascending. The time of day of
    ``start`` is kept on every instance.

    Raises:
        ValidationError: unknown frequency or unparsable selection
    """
    freq = (frequency or "").strip().lower()
    if freq not in FREQUENCIES:
        raise ValidationError(f"Unknown frequency: {frequency!r}", field="frequency")

    selected = [_parse_selected(d) for d in (selected_dates or [])]
    dates: List[datetime] = []

    if freq == "daily":
        dt = start + timedelta(days=1) if start.weekday() == _SUNDAY else start
        dates.append(dt)

    elif freq == "weekly":
        days = []
        for value in weekly_days or []:
            try:
                day = int(value)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid weekday: {value!r}", field="weekly_days")
            if not 0 <= day <= 6:
                raise ValidationError(f"Weekday out of range 0..6: {day}", field="weekly_days")
            days.append(day)
        for target in set(days or [form_weekday(start)]):
            delta = (target - form_weekday(start)) % 7
            dates.append(start + timedelta(days=delta))

    elif freq == "monthly":
        days = [d.day for d in selected] or [start.day]
        for day in days:
            dates.append(_sunday_to_saturday(_on_day(start, start.year, start.month, day)))

    else:  # quarterly / yearly
        picks = [(d.month, d.day) for d in selected] or [(start.month, start.day)]
        for month, day in picks:
            dates.append(_sunday_to_saturday(_on_day(start, start.year, month, day)))

    dates = sorted(set(dates))
    logger.info(f"Expanded {freq} recurrence from {start:%Y-%m-%d} into {len(dates)} date(s)")
    return dates

"""Calendar helpers shared by the ride store and the query screen."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time
from typing import Optional


def first_day_of_month(reference: date) -> date:
    return reference.replace(day=1)


def last_day_of_month(reference: date) -> date:
    _, days_in_month = calendar.monthrange(reference.year, reference.month)
    return reference.replace(day=days_in_month)


def add_months(reference: date, months: int) -> date:
    """Shift *reference* by *months*, clamping the day to the target month."""

    month_index = reference.year * 12 + (reference.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    _, days_in_month = calendar.monthrange(year, month)
    return date(year, month, min(reference.day, days_in_month))


def to_iso(value: date) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def from_iso(text: str) -> date:
    return date.fromisoformat(str(text)[:10])


def is_later_than_now(ride_date: date, now: Optional[datetime] = None) -> bool:
    """Return ``True`` when the start of *ride_date* lies strictly after *now*.

    Rides are kept at day granularity, so a ride dated today already started at
    midnight and does not count as later than now.
    """

    current = now or datetime.now()
    if current.tzinfo is not None:
        current = current.astimezone().replace(tzinfo=None)
    if isinstance(ride_date, datetime):
        ride_date = ride_date.date()
    return datetime.combine(ride_date, time.min) > current

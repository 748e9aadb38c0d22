"""
Billing periods: one calendar month, addressed by its "YYYY-MM" label.

Month bounds are local to the society's time zone. Stored timestamps are
compared in UTC, so naive local values go through to_utc first.
"""
import calendar
from datetime import datetime, timezone, tzinfo


def month_label(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """
    First and last instant of the month (the end is 23:59:59.999 of the last day).

    With tz the bounds are aware datetimes in that zone, otherwise naive.
    """
    start = datetime(year, month, 1, tzinfo=tz)
    end = datetime(year, month, last_day_of_month(year, month), 23, 59, 59, 999000, tzinfo=tz)
    return start, end


def to_utc(value: datetime, tz: tzinfo) -> datetime:
    """Aware UTC datetime; a naive value is read as wall-clock time in tz."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(timezone.utc)


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1

"""Calendar date helpers shared by the generator, validator and store codec."""

import calendar
from datetime import date, datetime, time

from dateutil.relativedelta import relativedelta

from src.core.config import Constants


def last_day_of_month(year: int, month: int) -> int:
    """Return the number of days in the given month."""
    return calendar.monthrange(year, month)[1]


def add_months(start: date, months: int, *, day_of_month: int | None = None) -> date:
    """Shift a date by whole months, clamping the day to the target month's length.

    Args:
        start: Date to shift
        months: Number of months to add (may be negative)
        day_of_month: Day to aim for instead of ``start.day``; used by monthly
            recurrence so every step clamps from the original day

    Returns:
        The shifted date
    """
    # relativedelta clamps an absolute day to the target month's length
    return start + relativedelta(months=months, day=day_of_month or start.day)


def format_date(value: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return value.strftime(Constants.DATE_FORMAT)


def parse_date(value: str | date) -> date:
    """Parse a YYYY-MM-DD string (dates pass through unchanged)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, Constants.DATE_FORMAT).date()


def format_time(value: time) -> str:
    """Format a time of day as HH:MM."""
    return value.strftime(Constants.TIME_FORMAT)


def parse_time(value: str | time) -> time:
    """Parse an HH:MM string (times pass through unchanged)."""
    if isinstance(value, time):
        return value
    return datetime.strptime(value, Constants.TIME_FORMAT).time()


def month_dates(year: int, month: int) -> list[date]:
    """Return every calendar date in a month."""
    return [date(year, month, day) for day in range(1, last_day_of_month(year, month) + 1)]

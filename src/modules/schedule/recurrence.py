"""Bounded occurrence date generation for repeating scheduled tasks."""

import logging
from datetime import date, timedelta

from src.core.config import settings
from src.core.dates import add_months
from src.domain.scheduled_task import RepeatFrequency, ScheduledTask


logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)


def get_horizon(task: ScheduledTask, *, lookahead_months: int | None = None) -> date:
    """Return the last date a recurring series may reach.

    The task's due date bounds the series when set; otherwise the series looks
    ahead a fixed number of months from the scheduled date.
    """
    if task.due_date is not None:
        return task.due_date
    months = settings.recurrence_lookahead_months if lookahead_months is None else lookahead_months
    return add_months(task.scheduled_date, months)


def _weekly_dates(start: date, horizon: date, cap: int) -> list[date]:
    dates = [start]
    current = start
    while len(dates) < cap:
        current += WEEK
        if current > horizon:
            break
        dates.append(current)
    return dates


def _monthly_dates(start: date, horizon: date, cap: int) -> list[date]:
    # Clamp every step from the original day so Jan 31 -> Feb 29 -> Mar 31
    day_of_month = start.day
    dates = [start]
    step = 1
    while len(dates) < cap:
        current = add_months(start, step, day_of_month=day_of_month)
        if current > horizon:
            break
        dates.append(current)
        step += 1
    return dates


def generate_occurrence_dates(
    task: ScheduledTask,
    *,
    lookahead_months: int | None = None,
    weekly_cap: int | None = None,
    monthly_cap: int | None = None,
) -> list[date]:
    """Expand a task into its ordered occurrence dates.

    The first element is always the task's scheduled date. Weekly series step
    seven days and monthly series step one calendar month, both stopping at the
    horizon or at the occurrence cap, whichever comes first. Never raises.

    Args:
        task: Task to expand
        lookahead_months: Horizon for tasks without a due date
        weekly_cap: Maximum weekly occurrences (defaults to settings)
        monthly_cap: Maximum monthly occurrences (defaults to settings)

    Returns:
        Non-empty list of dates in ascending order
    """
    start = task.scheduled_date

    match task.repeat_frequency:
        case RepeatFrequency.WEEKLY:
            cap = settings.weekly_occurrence_cap if weekly_cap is None else weekly_cap
            return _weekly_dates(start, get_horizon(task, lookahead_months=lookahead_months), cap)
        case RepeatFrequency.MONTHLY:
            cap = settings.monthly_occurrence_cap if monthly_cap is None else monthly_cap
            return _monthly_dates(start, get_horizon(task, lookahead_months=lookahead_months), cap)
        case RepeatFrequency.DAILY:
            logger.warning("Daily recurrence is not supported, showing task %s once", task.id)
            return [start]
        case _:
            return [start]

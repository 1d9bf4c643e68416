"""Calendar aggregation: occurrence index, per-day counts and month summaries.

Everything here is pure and synchronous. The index is rebuilt from the full task
list on every render cycle; it is never patched incrementally.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, time

from src.core.dates import month_dates
from src.domain.occurrence import PersistedOccurrence, VirtualOccurrence
from src.domain.scheduled_task import ScheduledTask, TaskStatus
from src.models.service_models import (
    DateCount,
    DayDetail,
    DaySummary,
    MonthSummary,
    OccurrenceSummary,
    ScheduleStats,
    StatusBreakdown,
)
from src.modules.schedule.recurrence import generate_occurrence_dates


OccurrenceIndex = dict[date, list[PersistedOccurrence | VirtualOccurrence]]


def build_occurrence_index(
    tasks: Iterable[ScheduledTask],
    *,
    lookahead_months: int | None = None,
) -> OccurrenceIndex:
    """Group tasks by calendar date, synthesizing recurring instances.

    Each task appears on its scheduled date as itself. Recurring tasks also
    appear on every further generated date as a virtual occurrence.
    """
    index: OccurrenceIndex = defaultdict(list)
    for task in tasks:
        index[task.scheduled_date].append(PersistedOccurrence(task=task))
        if not task.is_recurring:
            continue
        for occurrence_date in generate_occurrence_dates(task, lookahead_months=lookahead_months)[1:]:
            index[occurrence_date].append(VirtualOccurrence.from_task(task, occurrence_date))
    return dict(index)


def count_due(tasks: Iterable[ScheduledTask], target: date) -> int:
    """Count stored tasks due on the target date."""
    return sum(1 for task in tasks if task.due_date == target)


def count_for_date(tasks: Sequence[ScheduledTask], index: OccurrenceIndex, target: date) -> DateCount:
    """Return the occurrence and due counts for a date, without deduplication."""
    return DateCount(
        date=target,
        direct_count=len(index.get(target, [])),
        due_count=count_due(tasks, target),
    )


def status_breakdown(index: OccurrenceIndex, target: date) -> StatusBreakdown:
    """Count statuses among the occurrences on a date."""
    occurrences = index.get(target, [])
    return StatusBreakdown(
        upcoming=sum(1 for occ in occurrences if occ.status == TaskStatus.UPCOMING),
        completed=sum(1 for occ in occurrences if occ.status == TaskStatus.COMPLETED),
        missed=sum(1 for occ in occurrences if occ.status == TaskStatus.MISSED),
        due_today=sum(1 for occ in occurrences if occ.task.due_date == target),
    )


def occurrences_on(index: OccurrenceIndex, target: date) -> list[PersistedOccurrence | VirtualOccurrence]:
    """Return a day's occurrences, untimed first, then by time and title."""

    def sort_key(occ: PersistedOccurrence | VirtualOccurrence) -> tuple[bool, time, str]:
        at = occ.task.scheduled_time
        return (at is not None, at or time.min, occ.task.title.lower())

    return sorted(index.get(target, []), key=sort_key)


def summarize_month(
    tasks: Sequence[ScheduledTask],
    year: int,
    month: int,
    *,
    lookahead_months: int | None = None,
    index: OccurrenceIndex | None = None,
) -> MonthSummary:
    """Summarize every day of a month that has occurrences or due tasks.

    Args:
        tasks: Stored tasks of the current snapshot
        year: Visible year
        month: Visible month (1-12)
        lookahead_months: Horizon for recurring tasks without a due date
        index: Prebuilt index for the same tasks, if the caller has one

    Returns:
        MonthSummary with one DaySummary per non-empty day
    """
    if index is None:
        index = build_occurrence_index(tasks, lookahead_months=lookahead_months)

    days = []
    for day in month_dates(year, month):
        counts = count_for_date(tasks, index, day)
        if counts.total == 0:
            continue
        days.append(
            DaySummary(
                date=day,
                direct_count=counts.direct_count,
                due_count=counts.due_count,
                total=counts.total,
                has_recurring=any(occ.task.is_recurring for occ in index.get(day, [])),
                statuses=status_breakdown(index, day),
            )
        )
    return MonthSummary(year=year, month=month, days=days)


def compute_stats(tasks: Iterable[ScheduledTask]) -> ScheduleStats:
    """Total the stored tasks by status."""
    tasks = list(tasks)
    return ScheduleStats(
        total=len(tasks),
        upcoming=sum(1 for task in tasks if task.status == TaskStatus.UPCOMING),
        completed=sum(1 for task in tasks if task.status == TaskStatus.COMPLETED),
        missed=sum(1 for task in tasks if task.status == TaskStatus.MISSED),
        recurring=sum(1 for task in tasks if task.is_recurring),
    )


def _summarize_occurrence(occ: PersistedOccurrence | VirtualOccurrence) -> OccurrenceSummary:
    source_id = occ.task.id if isinstance(occ, PersistedOccurrence) else occ.source_id
    return OccurrenceSummary(key=occ.key, kind=occ.kind, source_id=source_id, occurs_on=occ.occurs_on, task=occ.task)


def day_detail(tasks: Sequence[ScheduledTask], index: OccurrenceIndex, target: date) -> DayDetail:
    """Collect counts, statuses and the ordered event list for one day."""
    counts = count_for_date(tasks, index, target)
    return DayDetail(
        date=target,
        direct_count=counts.direct_count,
        due_count=counts.due_count,
        total=counts.total,
        statuses=status_breakdown(index, target),
        occurrences=[_summarize_occurrence(occ) for occ in occurrences_on(index, target)],
    )


def occurrences_for_task(index: OccurrenceIndex, task_id: str) -> list[PersistedOccurrence | VirtualOccurrence]:
    """Return every occurrence of one stored task in date order."""
    found = [
        occ
        for occurrences in index.values()
        for occ in occurrences
        if (occ.task.id if isinstance(occ, PersistedOccurrence) else occ.source_id) == task_id
    ]
    return sorted(found, key=lambda occ: occ.occurs_on)

"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries and aggregation results into typed objects.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict

from src.domain.scheduled_task import ScheduledTask


class DateCount(BaseModel):
    """Event counts shown on a calendar day.

    ``direct_count`` and ``due_count`` are reported separately; a task that both
    occurs and is due on the same day is counted in each.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    direct_count: int
    due_count: int

    @property
    def total(self) -> int:
        return self.direct_count + self.due_count


class StatusBreakdown(BaseModel):
    """Status counts among the occurrences on a calendar day."""

    model_config = ConfigDict(frozen=True)

    upcoming: int = 0
    completed: int = 0
    missed: int = 0
    due_today: int = 0


class DaySummary(BaseModel):
    """Counts and status breakdown for one day of the visible month."""

    model_config = ConfigDict(frozen=True)

    date: date
    direct_count: int
    due_count: int
    total: int
    has_recurring: bool
    statuses: StatusBreakdown


class MonthSummary(BaseModel):
    """Calendar data for a visible month; days without events are omitted."""

    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    days: list[DaySummary]

    def for_date(self, day: date) -> DaySummary | None:
        return next((summary for summary in self.days if summary.date == day), None)


class ScheduleStats(BaseModel):
    """Status totals over the stored tasks of a snapshot."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    upcoming: int = 0
    completed: int = 0
    missed: int = 0
    recurring: int = 0


class SweepResult(BaseModel):
    """Outcome of a missed-task sweep."""

    transitioned: int


class OccurrenceSummary(BaseModel):
    """One entry of a day's event list, stored or synthesized."""

    model_config = ConfigDict(frozen=True)

    key: str
    kind: str
    source_id: str
    occurs_on: date
    task: ScheduledTask


class DayDetail(BaseModel):
    """Everything shown for a selected calendar day."""

    model_config = ConfigDict(frozen=True)

    date: date
    direct_count: int
    due_count: int
    total: int
    statuses: StatusBreakdown
    occurrences: list[OccurrenceSummary]


class OccurrenceDates(BaseModel):
    """Generated occurrence dates of one stored task."""

    task_id: str
    dates: list[date]

"""Update models for database operations."""

from datetime import date, time

from pydantic import BaseModel

from src.domain.scheduled_task import RepeatFrequency


class ScheduledTaskUpdate(BaseModel):
    """Partial update for a scheduled task.

    Only fields explicitly set are applied; setting an optional field to None clears it.
    Status is not editable here, it changes through the lifecycle transitions.
    """

    title: str | None = None
    description: str | None = None
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    due_date: date | None = None
    repeat_frequency: RepeatFrequency | None = None
    notification_enabled: bool | None = None

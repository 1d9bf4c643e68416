"""Scheduled task domain models and enums."""

from datetime import date, time
from enum import StrEnum

from pydantic import BaseModel, Field, field_serializer

from src.core.dates import format_time


class RepeatFrequency(StrEnum):
    """How often a scheduled task repeats."""

    NONE = "none"
    DAILY = "daily"  # Declared for compatibility, never generated
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TaskStatus(StrEnum):
    """Scheduled task lifecycle status."""

    UPCOMING = "upcoming"
    COMPLETED = "completed"
    MISSED = "missed"


class ScheduledTask(BaseModel):
    """Scheduled task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    user_id: str = Field(..., description="Owner user ID")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Optional details")
    scheduled_date: date = Field(..., description="Calendar date the task starts on")
    scheduled_time: time | None = Field(default=None, description="Optional time of day (HH:MM)")
    due_date: date | None = Field(default=None, description="Optional calendar date the task is due")
    repeat_frequency: RepeatFrequency = Field(default=RepeatFrequency.NONE, description="Repeat frequency")
    notification_enabled: bool = Field(default=False, description="Whether a reminder is scheduled")
    status: TaskStatus = Field(default=TaskStatus.UPCOMING, description="Current lifecycle status")
    notification_handle: str | None = Field(default=None, description="Handle of the scheduled reminder")

    @property
    def is_recurring(self) -> bool:
        return self.repeat_frequency != RepeatFrequency.NONE

    @field_serializer("scheduled_time")
    def _serialize_time(self, value: time | None) -> str | None:
        return format_time(value) if value is not None else None

"""Pydantic models for creating records in database."""

from datetime import date, time

from pydantic import BaseModel, Field

from src.domain.scheduled_task import RepeatFrequency


class ScheduledTaskCreate(BaseModel):
    """Pydantic model for creating a scheduled task.

    Business rules (non-empty title, no past dates, due date ordering) are
    checked by the lifecycle validator so they surface as ScheduleValidationError.
    """

    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Optional details")
    scheduled_date: date = Field(..., description="Calendar date the task starts on")
    scheduled_time: time | None = Field(default=None, description="Optional time of day")
    due_date: date | None = Field(default=None, description="Optional due date")
    repeat_frequency: RepeatFrequency = Field(default=RepeatFrequency.NONE, description="Repeat frequency")
    notification_enabled: bool = Field(default=True, description="Schedule a reminder for this task")

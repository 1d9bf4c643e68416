"""Domain models and DTOs."""

from src.domain.create_models import ScheduledTaskCreate
from src.domain.occurrence import Occurrence, PersistedOccurrence, VirtualOccurrence
from src.domain.scheduled_task import RepeatFrequency, ScheduledTask, TaskStatus
from src.domain.update_models import ScheduledTaskUpdate


__all__ = [
    "Occurrence",
    "PersistedOccurrence",
    "RepeatFrequency",
    "ScheduledTask",
    "ScheduledTaskCreate",
    "ScheduledTaskUpdate",
    "TaskStatus",
    "VirtualOccurrence",
]

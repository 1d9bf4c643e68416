"""Calendar occurrences: stored tasks and synthesized recurring instances."""

from datetime import date
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.core.config import Constants
from src.core.dates import format_date
from src.core.errors import VirtualOccurrenceError
from src.domain.scheduled_task import ScheduledTask, TaskStatus


class PersistedOccurrence(BaseModel):
    """A stored task shown on its own scheduled date."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["persisted"] = "persisted"
    task: ScheduledTask

    @property
    def key(self) -> str:
        return self.task.id

    @property
    def occurs_on(self) -> date:
        return self.task.scheduled_date

    @property
    def status(self) -> TaskStatus:
        return self.task.status


class VirtualOccurrence(BaseModel):
    """A recurring instance synthesized for display; never written to the store.

    ``task`` is a copy of the source task with ``scheduled_date`` moved to the
    occurrence date and ``id`` replaced by the derived key.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["virtual"] = "virtual"
    source_id: str
    occurrence_date: date
    task: ScheduledTask

    @classmethod
    def from_task(cls, task: ScheduledTask, occurrence_date: date) -> "VirtualOccurrence":
        key = virtual_key(task.id, occurrence_date)
        projected = task.model_copy(update={"id": key, "scheduled_date": occurrence_date})
        return cls(source_id=task.id, occurrence_date=occurrence_date, task=projected)

    @property
    def key(self) -> str:
        return virtual_key(self.source_id, self.occurrence_date)

    @property
    def occurs_on(self) -> date:
        return self.occurrence_date

    @property
    def status(self) -> TaskStatus:
        return self.task.status


Occurrence = Annotated[PersistedOccurrence | VirtualOccurrence, Field(discriminator="kind")]


def virtual_key(source_id: str, occurrence_date: date) -> str:
    """Build the derived identity of a recurring instance."""
    return f"{source_id}{Constants.VIRTUAL_KEY_SEPARATOR}{format_date(occurrence_date)}"


def is_virtual_key(key: str) -> bool:
    """Return True if the id was derived for a synthesized occurrence."""
    return Constants.VIRTUAL_KEY_SEPARATOR in key


def resolve_task_id(occurrence: PersistedOccurrence | VirtualOccurrence) -> str:
    """Return the stored task id behind an occurrence.

    Raises:
        VirtualOccurrenceError: If the occurrence was synthesized
    """
    if isinstance(occurrence, VirtualOccurrence):
        msg = f"Occurrence {occurrence.key} is a recurring instance of task {occurrence.source_id}"
        raise VirtualOccurrenceError(msg)
    return occurrence.task.id

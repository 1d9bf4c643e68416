"""Scheduled task lifecycle controller: validated CRUD and status changes."""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any

from src.core import db_client
from src.core.clock import Clock, system_clock
from src.core.config import Constants, settings
from src.core.db_client import sanitize_param
from src.core.errors import OperationInProgressError, RecordNotFoundError, VirtualOccurrenceError
from src.core.logging import log_task_event, span
from src.domain.create_models import ScheduledTaskCreate
from src.domain.occurrence import PersistedOccurrence, VirtualOccurrence, is_virtual_key, resolve_task_id
from src.domain.scheduled_task import ScheduledTask, TaskStatus
from src.domain.update_models import ScheduledTaskUpdate
from src.modules.schedule import state_machine
from src.modules.schedule.sweeper import sweep_missed_tasks
from src.modules.schedule.validation import validate_schedule
from src.services.notification_service import NotificationScheduler


logger = logging.getLogger(__name__)

SAVE_OPERATION = "save"
DELETE_OPERATION = "delete"


class OperationGuard:
    """Tracks write operations in flight to reject duplicate submissions.

    A flag is set when an operation starts and cleared a short cooldown after it
    finishes, whether it succeeded or failed.
    """

    def __init__(self, cooldown_seconds: float) -> None:
        self._cooldown_seconds = cooldown_seconds
        self._in_flight: set[str] = set()

    def is_in_flight(self, operation: str) -> bool:
        return operation in self._in_flight

    @asynccontextmanager
    async def hold(self, operation: str) -> AsyncIterator[None]:
        if operation in self._in_flight:
            msg = f"A {operation} operation is already in progress"
            raise OperationInProgressError(msg)

        self._in_flight.add(operation)
        try:
            yield
        finally:
            self._release(operation)

    def _release(self, operation: str) -> None:
        if self._cooldown_seconds <= 0:
            self._in_flight.discard(operation)
            return
        asyncio.get_running_loop().call_later(self._cooldown_seconds, self._in_flight.discard, operation)


def _require_stored_id(task_id: str) -> None:
    if is_virtual_key(task_id):
        msg = f"{task_id} is a recurring instance, not a stored task"
        raise VirtualOccurrenceError(msg)


class ScheduleController:
    """Gates every write to a user's scheduled tasks.

    Creation and edits are validated before any store call. Status changes go
    through the state machine; ``missed`` is only ever assigned by the sweeper.
    """

    def __init__(
        self,
        *,
        user_id: str,
        clock: Clock = system_clock,
        notifier: NotificationScheduler | None = None,
        cooldown_seconds: float | None = None,
    ) -> None:
        self.user_id = user_id
        self.clock = clock
        self.notifier = notifier
        self.guard = OperationGuard(
            settings.submit_cooldown_seconds if cooldown_seconds is None else cooldown_seconds
        )

    async def get_task(self, task_id: str) -> ScheduledTask:
        """Fetch one of the user's tasks.

        Raises:
            RecordNotFoundError: If the task does not exist or belongs to another user
        """
        _require_stored_id(task_id)
        record = await db_client.get_record(collection=Constants.SCHEDULED_TASKS_COLLECTION, record_id=task_id)
        if record.get("user_id") != self.user_id:
            msg = f"Record not found in {Constants.SCHEDULED_TASKS_COLLECTION}: {task_id}"
            raise RecordNotFoundError(msg)
        return ScheduledTask(**record)

    async def list_tasks(self, *, statuses: Iterable[TaskStatus] | None = None) -> list[ScheduledTask]:
        """List the user's tasks ordered by scheduled date, optionally by status."""
        with span("schedule_service.list_tasks"):
            filters = [f'user_id = "{sanitize_param(self.user_id)}"']
            wanted = sorted(set(statuses or []))
            if wanted:
                filters.append("(" + " || ".join(f'status = "{status}"' for status in wanted) + ")")

            records = await db_client.list_all_records(
                collection=Constants.SCHEDULED_TASKS_COLLECTION,
                filter_query=" && ".join(filters),
                sort="+scheduled_date,+id",
            )
            return [ScheduledTask(**record) for record in records]

    async def create_task(self, data: ScheduledTaskCreate) -> ScheduledTask:
        """Validate and store a new upcoming task, scheduling its reminder.

        Raises:
            ScheduleValidationError: If the input breaks a scheduling rule
            OperationInProgressError: If a save is already in flight
            DatabaseError: If the store fails
        """
        with span("schedule_service.create_task"):
            async with self.guard.hold(SAVE_OPERATION):
                validate_schedule(
                    title=data.title,
                    scheduled_date=data.scheduled_date,
                    scheduled_time=data.scheduled_time,
                    due_date=data.due_date,
                    repeat_frequency=data.repeat_frequency,
                    clock=self.clock,
                )

                record: dict[str, Any] = {
                    "user_id": self.user_id,
                    "title": data.title.strip(),
                    "description": (data.description or "").strip() or None,
                    "scheduled_date": data.scheduled_date,
                    "scheduled_time": data.scheduled_time,
                    "due_date": data.due_date,
                    "repeat_frequency": data.repeat_frequency,
                    "notification_enabled": data.notification_enabled,
                    "status": TaskStatus.UPCOMING,
                }
                created = ScheduledTask(
                    **await db_client.create_record(collection=Constants.SCHEDULED_TASKS_COLLECTION, data=record)
                )

                handle = self._schedule_reminder(created)
                if handle:
                    created = await self._attach_reminder(created, handle)

                log_task_event(
                    logger,
                    "info",
                    "Created scheduled task",
                    user_id=self.user_id,
                    task_id=created.id,
                    repeat_frequency=str(created.repeat_frequency),
                )
                return created

    async def update_task(self, task_id: str, changes: ScheduledTaskUpdate) -> ScheduledTask:
        """Apply a partial edit after validating the merged task.

        A new reminder is scheduled if reminders remain enabled. The previous one
        is cancelled only once the store write succeeds; a failed write keeps it
        and drops the new one.

        Raises:
            RecordNotFoundError: If the task does not exist
            ScheduleValidationError: If the merged task breaks a scheduling rule
            OperationInProgressError: If a save is already in flight
            DatabaseError: If the store fails
        """
        with span("schedule_service.update_task"):
            async with self.guard.hold(SAVE_OPERATION):
                current = await self.get_task(task_id)
                fields = changes.model_dump(exclude_unset=True)
                if "title" in fields and fields["title"] is not None:
                    fields["title"] = fields["title"].strip()
                if "description" in fields:
                    fields["description"] = (fields["description"] or "").strip() or None
                # Required fields cannot be cleared
                for required in ("title", "scheduled_date", "repeat_frequency", "notification_enabled"):
                    if fields.get(required, ...) is None:
                        del fields[required]

                merged = current.model_copy(update=fields)
                validate_schedule(
                    title=merged.title,
                    scheduled_date=merged.scheduled_date,
                    scheduled_time=merged.scheduled_time,
                    due_date=merged.due_date,
                    repeat_frequency=merged.repeat_frequency,
                    clock=self.clock,
                )

                new_handle = self._schedule_reminder(merged)
                fields["notification_handle"] = new_handle

                try:
                    record = await db_client.update_record(
                        collection=Constants.SCHEDULED_TASKS_COLLECTION,
                        record_id=task_id,
                        data=fields,
                    )
                except Exception:
                    if new_handle:
                        self._cancel_reminder(new_handle)
                    raise

                # The stored task now points at the new handle
                if current.notification_handle:
                    self._cancel_reminder(current.notification_handle)

                log_task_event(
                    logger, "info", "Updated scheduled task", user_id=self.user_id, task_id=task_id
                )
                return ScheduledTask(**record)

    async def delete_task(self, task_id: str) -> None:
        """Delete a task and cancel its pending reminder.

        Raises:
            RecordNotFoundError: If the task does not exist
            OperationInProgressError: If a delete is already in flight
            DatabaseError: If the store fails
        """
        with span("schedule_service.delete_task"):
            async with self.guard.hold(DELETE_OPERATION):
                current = await self.get_task(task_id)
                await db_client.delete_record(collection=Constants.SCHEDULED_TASKS_COLLECTION, record_id=task_id)
                if current.notification_handle:
                    self._cancel_reminder(current.notification_handle)
                log_task_event(
                    logger, "info", "Deleted scheduled task", user_id=self.user_id, task_id=task_id
                )

    async def complete_task(self, task_id: str) -> ScheduledTask:
        """Mark an upcoming task as completed.

        Raises:
            RecordNotFoundError: If the task does not exist
            InvalidTransitionError: If the task is not upcoming
        """
        await self.get_task(task_id)
        return ScheduledTask(**await state_machine.transition_to_completed(task_id=task_id))

    async def reset_task(self, task_id: str) -> ScheduledTask:
        """Return a completed or missed task to upcoming.

        Raises:
            RecordNotFoundError: If the task does not exist
            InvalidTransitionError: If the task is already upcoming
        """
        await self.get_task(task_id)
        return ScheduledTask(**await state_machine.transition_to_upcoming(task_id=task_id))

    async def complete_occurrence(self, occurrence: PersistedOccurrence | VirtualOccurrence) -> ScheduledTask:
        """Complete the stored task shown by a calendar occurrence.

        Raises:
            VirtualOccurrenceError: If the occurrence is a synthesized recurring instance
        """
        return await self.complete_task(resolve_task_id(occurrence))

    async def sweep(self) -> int:
        """Reconcile this user's overdue upcoming tasks into missed."""
        return await sweep_missed_tasks(clock=self.clock, user_id=self.user_id)

    async def _attach_reminder(self, task: ScheduledTask, handle: str) -> ScheduledTask:
        """Store a fresh reminder handle on a just-created task.

        The task is already saved, so a failed write cancels the reminder and
        returns the task without one instead of reporting the create as failed.
        """
        try:
            record = await db_client.update_record(
                collection=Constants.SCHEDULED_TASKS_COLLECTION,
                record_id=task.id,
                data={"notification_handle": handle},
            )
        except Exception as e:
            self._cancel_reminder(handle)
            log_task_event(
                logger,
                "warning",
                f"Saved task without reminder, handle write failed: {e}",
                task_id=task.id,
                user_id=self.user_id,
            )
            return task
        return ScheduledTask(**record)

    def _schedule_reminder(self, task: ScheduledTask) -> str | None:
        if self.notifier is None or not task.notification_enabled:
            return None
        try:
            return self.notifier.schedule(task)
        except Exception as e:
            logger.warning("Failed to schedule reminder for task %s: %s", task.id, e)
            return None

    def _cancel_reminder(self, handle: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.cancel(handle)
        except Exception as e:
            logger.warning("Failed to cancel reminder %s: %s", handle, e)

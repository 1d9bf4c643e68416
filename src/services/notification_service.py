"""Reminder scheduling for scheduled tasks.

Reminders are one-shot APScheduler jobs. The job id is the opaque handle stored
on the task so an edit or delete can cancel it. Delivery itself is delegated to
a sender callable; the engine never depends on delivery succeeding.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, time

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from src.core.clock import Clock, system_clock
from src.core.config import settings
from src.core.logging import span
from src.domain.scheduled_task import ScheduledTask


logger = logging.getLogger(__name__)

ReminderSender = Callable[[str, str], Awaitable[None]]


async def log_reminder(task_id: str, title: str) -> None:
    """Default sender: record the reminder in the application log."""
    logger.info("Reminder due for task %s: %s", task_id, title)


def compute_fire_time(task: ScheduledTask, *, default_hour: int | None = None) -> datetime:
    """Return the local instant a task's reminder should fire.

    Untimed tasks fire at the configured default hour (09:00 unless overridden).
    """
    hour = settings.default_notification_hour if default_hour is None else default_hour
    at = task.scheduled_time or time(hour=hour)
    return datetime.combine(task.scheduled_date, at)


class NotificationScheduler:
    """Schedules and cancels task reminders on an APScheduler instance."""

    def __init__(
        self,
        scheduler: BaseScheduler,
        *,
        sender: ReminderSender = log_reminder,
        clock: Clock = system_clock,
    ) -> None:
        self._scheduler = scheduler
        self._sender = sender
        self._clock = clock

    def schedule(self, task: ScheduledTask) -> str | None:
        """Schedule a reminder for a task.

        Returns:
            The reminder handle, or None when reminders are disabled for the task
            or its fire time is not in the future
        """
        with span("notification_service.schedule"):
            if not task.notification_enabled:
                return None

            fire_at = compute_fire_time(task)
            if fire_at <= self._clock.now():
                logger.info("Task %s fire time %s is in the past, not scheduling reminder", task.id, fire_at)
                return None

            handle = f"reminder:{task.id}:{uuid.uuid4().hex[:12]}"
            self._scheduler.add_job(
                self._sender,
                trigger=DateTrigger(run_date=fire_at),
                args=[task.id, task.title],
                id=handle,
                name=f"Reminder for {task.title}",
                misfire_grace_time=None,
            )
            logger.info("Scheduled reminder %s for task %s at %s", handle, task.id, fire_at.isoformat())
            return handle

    def cancel(self, handle: str) -> bool:
        """Cancel a previously scheduled reminder.

        Returns:
            True if the reminder was removed, False if it no longer exists
        """
        with span("notification_service.cancel"):
            try:
                self._scheduler.remove_job(handle)
            except JobLookupError:
                logger.info("Reminder %s already fired or was removed", handle)
                return False
            logger.info("Cancelled reminder %s", handle)
            return True

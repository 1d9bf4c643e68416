"""Unit tests for notification_service module."""

from datetime import date, datetime, time

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from src.services.notification_service import NotificationScheduler, compute_fire_time
from tests.unit.factories import make_task


@pytest.fixture
def scheduler():
    """An AsyncIOScheduler that is never started; jobs stay pending."""
    return AsyncIOScheduler()


@pytest.fixture
def notifier(scheduler, fixed_clock):
    return NotificationScheduler(scheduler, clock=fixed_clock)


@pytest.mark.unit
class TestComputeFireTime:
    """Tests for compute_fire_time."""

    def test_uses_scheduled_time(self):
        task = make_task(scheduled_date=date(2024, 1, 20), scheduled_time=time(14, 15))

        assert compute_fire_time(task) == datetime(2024, 1, 20, 14, 15)

    def test_untimed_task_fires_at_nine(self):
        task = make_task(scheduled_date=date(2024, 1, 20))

        assert compute_fire_time(task) == datetime(2024, 1, 20, 9, 0)

    def test_default_hour_override(self):
        task = make_task(scheduled_date=date(2024, 1, 20))

        assert compute_fire_time(task, default_hour=7) == datetime(2024, 1, 20, 7, 0)


@pytest.mark.unit
class TestNotificationScheduler:
    """Tests for NotificationScheduler (clock frozen at 2024-01-15 10:00)."""

    def test_schedules_future_reminder(self, notifier, scheduler):
        task = make_task(id="42", scheduled_date=date(2024, 1, 20), notification_enabled=True)

        handle = notifier.schedule(task)

        assert handle is not None
        assert handle.startswith("reminder:42:")
        job = scheduler.get_job(handle)
        assert job is not None
        assert job.args == ("42", "Water plants")

    def test_disabled_task_is_not_scheduled(self, notifier, scheduler):
        task = make_task(scheduled_date=date(2024, 1, 20), notification_enabled=False)

        assert notifier.schedule(task) is None
        assert scheduler.get_jobs() == []

    def test_past_fire_time_is_not_scheduled(self, notifier, scheduler):
        # Untimed task today fires at 09:00, before the frozen 10:00
        task = make_task(scheduled_date=date(2024, 1, 15), notification_enabled=True)

        assert notifier.schedule(task) is None
        assert scheduler.get_jobs() == []

    def test_cancel_removes_job(self, notifier, scheduler):
        task = make_task(scheduled_date=date(2024, 1, 20), notification_enabled=True)
        handle = notifier.schedule(task)

        assert notifier.cancel(handle) is True
        assert scheduler.get_job(handle) is None

    def test_cancel_unknown_handle_returns_false(self, notifier):
        assert notifier.cancel("reminder:missing:000000000000") is False

    def test_each_schedule_gets_new_handle(self, notifier):
        task = make_task(scheduled_date=date(2024, 1, 20), notification_enabled=True)

        assert notifier.schedule(task) != notifier.schedule(task)

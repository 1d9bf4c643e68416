"""Unit tests for the live schedule view."""

from datetime import date

import pytest

from src.domain.scheduled_task import TaskStatus
from src.modules.schedule.view import ScheduleView


async def _create(db, *, scheduled_date: str, user_id: str = "user1", **extra):
    data = {
        "user_id": user_id,
        "title": f"Task on {scheduled_date}",
        "scheduled_date": scheduled_date,
        "repeat_frequency": "none",
        "notification_enabled": False,
        "status": TaskStatus.UPCOMING,
        **extra,
    }
    return await db.create_record(collection="scheduled_tasks", data=data)


@pytest.mark.unit
class TestScheduleView:
    """Tests for ScheduleView (clock frozen at 2024-01-15 10:00)."""

    async def test_start_sweeps_and_loads_snapshot(self, patched_db, fixed_clock):
        overdue = await _create(patched_db, scheduled_date="2024-01-10")
        await _create(patched_db, scheduled_date="2024-01-20")
        await _create(patched_db, scheduled_date="2024-01-20", user_id="user2")

        async with ScheduleView(user_id="user1", clock=fixed_clock) as view:
            snapshot = view.snapshot
            assert snapshot.version >= 1
            assert len(snapshot.tasks) == 2
            stored = {task.id: task for task in snapshot.tasks}
            assert stored[overdue["id"]].status == TaskStatus.MISSED
            assert view.stats().missed == 1
            assert view.stats().upcoming == 1

    async def test_snapshot_is_replaced_on_change(self, patched_db, fixed_clock):
        await _create(patched_db, scheduled_date="2024-01-20")

        async with ScheduleView(user_id="user1", clock=fixed_clock) as view:
            before = view.snapshot
            await _create(patched_db, scheduled_date="2024-01-22", repeat_frequency="weekly", due_date="2024-02-05")

            after = await view.wait_for_snapshot(after_version=before.version)

            assert after is not before
            assert len(before.tasks) == 1
            assert len(after.tasks) == 2
            assert view.count_for_date(date(2024, 1, 29)).direct_count == 1
            assert view.month_summary(2024, 2).for_date(date(2024, 2, 5)).total == 2

    async def test_day_queries(self, patched_db, fixed_clock):
        await _create(patched_db, scheduled_date="2024-01-20", due_date="2024-01-20")

        async with ScheduleView(user_id="user1", clock=fixed_clock) as view:
            detail = view.day_detail(date(2024, 1, 20))

            assert detail.direct_count == 1
            assert detail.due_count == 1
            assert view.status_breakdown(date(2024, 1, 20)).due_today == 1
            assert len(view.occurrences_on(date(2024, 1, 20))) == 1

    async def test_close_stops_subscription(self, patched_db, fixed_clock):
        view = ScheduleView(user_id="user1", clock=fixed_clock)
        await view.start()
        assert view.is_running

        await view.close()
        await view.close()

        assert not view.is_running

    async def test_empty_schedule(self, patched_db, fixed_clock):
        async with ScheduleView(user_id="user1", clock=fixed_clock) as view:
            assert view.snapshot.tasks == ()
            assert view.month_summary(2024, 1).days == []
            assert view.stats().total == 0

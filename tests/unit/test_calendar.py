"""Unit tests for calendar aggregation."""

from datetime import date, time

import pytest

from src.domain.occurrence import PersistedOccurrence, VirtualOccurrence
from src.domain.scheduled_task import RepeatFrequency, TaskStatus
from src.modules.schedule import calendar
from tests.unit.factories import make_task


@pytest.fixture
def weekly_task():
    return make_task(
        id="10",
        title="Team sync",
        scheduled_date=date(2024, 1, 15),
        due_date=date(2024, 2, 5),
        repeat_frequency=RepeatFrequency.WEEKLY,
    )


@pytest.mark.unit
class TestBuildOccurrenceIndex:
    """Tests for build_occurrence_index."""

    def test_stored_task_appears_on_its_own_date(self):
        task = make_task(id="1", scheduled_date=date(2024, 1, 20))

        index = calendar.build_occurrence_index([task])

        assert list(index) == [date(2024, 1, 20)]
        assert isinstance(index[date(2024, 1, 20)][0], PersistedOccurrence)

    def test_recurring_task_gets_virtual_occurrences(self, weekly_task):
        index = calendar.build_occurrence_index([weekly_task])

        assert isinstance(index[date(2024, 1, 15)][0], PersistedOccurrence)
        virtual = index[date(2024, 1, 22)][0]
        assert isinstance(virtual, VirtualOccurrence)
        assert virtual.key == "10-recurring-2024-01-22"
        assert virtual.source_id == "10"
        assert virtual.task.scheduled_date == date(2024, 1, 22)
        assert virtual.status == TaskStatus.UPCOMING
        assert sorted(index) == [date(2024, 1, 15), date(2024, 1, 22), date(2024, 1, 29), date(2024, 2, 5)]


@pytest.mark.unit
class TestCountForDate:
    """Tests for count_for_date."""

    def test_empty_date_is_zero(self):
        counts = calendar.count_for_date([], {}, date(2024, 1, 1))

        assert counts.direct_count == 0
        assert counts.due_count == 0
        assert counts.total == 0

    def test_occurrence_and_due_are_counted_separately(self):
        task = make_task(scheduled_date=date(2024, 1, 20), due_date=date(2024, 1, 20))
        tasks = [task]
        index = calendar.build_occurrence_index(tasks)

        counts = calendar.count_for_date(tasks, index, date(2024, 1, 20))

        assert counts.direct_count == 1
        assert counts.due_count == 1
        assert counts.total == 2

    def test_due_only_date(self):
        task = make_task(scheduled_date=date(2024, 1, 20), due_date=date(2024, 1, 25))
        tasks = [task]
        index = calendar.build_occurrence_index(tasks)

        counts = calendar.count_for_date(tasks, index, date(2024, 1, 25))

        assert counts.direct_count == 0
        assert counts.due_count == 1


@pytest.mark.unit
class TestStatusBreakdown:
    """Tests for status_breakdown."""

    def test_counts_each_status(self):
        day = date(2024, 1, 20)
        tasks = [
            make_task(id="1", scheduled_date=day, status=TaskStatus.UPCOMING, due_date=day),
            make_task(id="2", scheduled_date=day, status=TaskStatus.COMPLETED),
            make_task(id="3", scheduled_date=day, status=TaskStatus.MISSED),
            make_task(id="4", scheduled_date=day, status=TaskStatus.MISSED),
        ]
        index = calendar.build_occurrence_index(tasks)

        breakdown = calendar.status_breakdown(index, day)

        assert breakdown.upcoming == 1
        assert breakdown.completed == 1
        assert breakdown.missed == 2
        assert breakdown.due_today == 1

    def test_empty_date(self):
        breakdown = calendar.status_breakdown({}, date(2024, 1, 1))

        assert (breakdown.upcoming, breakdown.completed, breakdown.missed, breakdown.due_today) == (0, 0, 0, 0)


@pytest.mark.unit
def test_occurrences_on_orders_untimed_first_then_by_time():
    day = date(2024, 1, 20)
    tasks = [
        make_task(id="1", title="Late", scheduled_date=day, scheduled_time=time(18, 0)),
        make_task(id="2", title="Anytime", scheduled_date=day),
        make_task(id="3", title="Early", scheduled_date=day, scheduled_time=time(7, 30)),
    ]
    index = calendar.build_occurrence_index(tasks)

    titles = [occ.task.title for occ in calendar.occurrences_on(index, day)]

    assert titles == ["Anytime", "Early", "Late"]


@pytest.mark.unit
class TestSummarizeMonth:
    """Tests for summarize_month."""

    def test_only_days_with_events_are_listed(self, weekly_task):
        summary = calendar.summarize_month([weekly_task], 2024, 1)

        assert [day.date for day in summary.days] == [date(2024, 1, 15), date(2024, 1, 22), date(2024, 1, 29)]
        assert all(day.has_recurring for day in summary.days)
        assert summary.for_date(date(2024, 1, 16)) is None

    def test_due_dates_in_month_are_included(self, weekly_task):
        summary = calendar.summarize_month([weekly_task], 2024, 2)

        feb_5 = summary.for_date(date(2024, 2, 5))
        assert feb_5 is not None
        assert feb_5.direct_count == 1
        assert feb_5.due_count == 1
        assert feb_5.total == 2

    def test_empty_month(self):
        summary = calendar.summarize_month([], 2024, 2)

        assert summary.days == []


@pytest.mark.unit
def test_day_detail_lists_occurrence_keys(weekly_task):
    index = calendar.build_occurrence_index([weekly_task])

    detail = calendar.day_detail([weekly_task], index, date(2024, 1, 22))

    assert detail.total == 1
    assert [occ.key for occ in detail.occurrences] == ["10-recurring-2024-01-22"]
    assert detail.occurrences[0].kind == "virtual"
    assert detail.occurrences[0].source_id == "10"


@pytest.mark.unit
def test_occurrences_for_task_in_date_order(weekly_task):
    other = make_task(id="11", scheduled_date=date(2024, 1, 22))
    index = calendar.build_occurrence_index([weekly_task, other])

    occurrences = calendar.occurrences_for_task(index, "10")

    assert [occ.occurs_on for occ in occurrences] == [
        date(2024, 1, 15),
        date(2024, 1, 22),
        date(2024, 1, 29),
        date(2024, 2, 5),
    ]


@pytest.mark.unit
def test_compute_stats():
    tasks = [
        make_task(id="1", status=TaskStatus.UPCOMING, repeat_frequency=RepeatFrequency.MONTHLY),
        make_task(id="2", status=TaskStatus.COMPLETED),
        make_task(id="3", status=TaskStatus.MISSED),
    ]

    stats = calendar.compute_stats(tasks)

    assert stats.total == 3
    assert stats.upcoming == 1
    assert stats.completed == 1
    assert stats.missed == 1
    assert stats.recurring == 1

"""Live, read-only view over one user's scheduled tasks.

A ScheduleView subscribes to the task store and swaps in a fresh immutable
snapshot on every delivery. Calendar queries are answered from the current
snapshot only; snapshots are replaced wholesale, never merged.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import date
from types import TracebackType
from typing import Any

from src.core import db_client
from src.core.clock import Clock, system_clock
from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.core.errors import DatabaseError
from src.core.logging import span
from src.domain.occurrence import PersistedOccurrence, VirtualOccurrence
from src.domain.scheduled_task import ScheduledTask
from src.models.service_models import DateCount, DayDetail, MonthSummary, ScheduleStats, StatusBreakdown
from src.modules.schedule import calendar
from src.modules.schedule.sweeper import sweep_missed_tasks


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Tasks of one store delivery with the index and stats derived from them."""

    version: int
    tasks: tuple[ScheduledTask, ...] = ()
    index: calendar.OccurrenceIndex = field(default_factory=dict)
    stats: ScheduleStats = field(default_factory=lambda: calendar.compute_stats([]))

    @classmethod
    def build(
        cls, version: int, tasks: tuple[ScheduledTask, ...], *, lookahead_months: int | None = None
    ) -> "ScheduleSnapshot":
        return cls(
            version=version,
            tasks=tasks,
            index=calendar.build_occurrence_index(tasks, lookahead_months=lookahead_months),
            stats=calendar.compute_stats(tasks),
        )


class ScheduleView:
    """Owns the store subscription for one user.

    Usage:
        async with ScheduleView(user_id="user1") as view:
            summary = view.month_summary(2024, 1)
    """

    def __init__(
        self,
        *,
        user_id: str,
        clock: Clock = system_clock,
        lookahead_months: int | None = None,
    ) -> None:
        self.user_id = user_id
        self.clock = clock
        self.lookahead_months = lookahead_months
        self._snapshot = ScheduleSnapshot(version=0)
        self._consumer: asyncio.Task[None] | None = None
        self._delivered = asyncio.Event()
        self._error: Exception | None = None

    @property
    def snapshot(self) -> ScheduleSnapshot:
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> None:
        """Sweep overdue tasks, subscribe, and wait for the first snapshot.

        Raises:
            DatabaseError: If the first snapshot could not be loaded
        """
        if self._consumer is not None:
            return

        with span("schedule_view.start"):
            await sweep_missed_tasks(clock=self.clock, user_id=self.user_id)

            stream = db_client.subscribe_records(
                collection=Constants.SCHEDULED_TASKS_COLLECTION,
                filter_query=f'user_id = "{sanitize_param(self.user_id)}"',
                sort="+scheduled_date,+id",
            )
            self._consumer = asyncio.create_task(self._consume(stream))
            await self.wait_for_snapshot(after_version=0)

            if self._error is not None and self._snapshot.version == 0:
                msg = f"Failed to load schedule for user {self.user_id}"
                raise DatabaseError(msg) from self._error

    async def close(self) -> None:
        """Cancel the subscription. Safe to call more than once."""
        consumer, self._consumer = self._consumer, None
        if consumer is None:
            return
        consumer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await consumer

    async def __aenter__(self) -> "ScheduleView":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def wait_for_snapshot(self, *, after_version: int) -> ScheduleSnapshot:
        """Wait until a snapshot newer than ``after_version`` has been applied."""
        while self._snapshot.version <= after_version and self._error is None:
            self._delivered.clear()
            await self._delivered.wait()
        return self._snapshot

    async def _consume(self, stream: AsyncIterator[list[dict[str, Any]]]) -> None:
        try:
            async for records in stream:
                self._apply(records)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Schedule subscription failed: %s", e, extra={"user_id": self.user_id})
            self._error = e
            self._delivered.set()
        finally:
            with contextlib.suppress(Exception):
                await stream.aclose()  # type: ignore[attr-defined]

    def _apply(self, records: list[dict[str, Any]]) -> None:
        tasks = tuple(ScheduledTask(**record) for record in records)
        self._snapshot = ScheduleSnapshot.build(
            self._snapshot.version + 1, tasks, lookahead_months=self.lookahead_months
        )
        self._error = None
        self._delivered.set()
        logger.debug("Applied schedule snapshot %d (%d tasks)", self._snapshot.version, len(tasks))

    def month_summary(self, year: int, month: int) -> MonthSummary:
        snapshot = self._snapshot
        return calendar.summarize_month(snapshot.tasks, year, month, index=snapshot.index)

    def count_for_date(self, day: date) -> DateCount:
        snapshot = self._snapshot
        return calendar.count_for_date(snapshot.tasks, snapshot.index, day)

    def status_breakdown(self, day: date) -> StatusBreakdown:
        return calendar.status_breakdown(self._snapshot.index, day)

    def occurrences_on(self, day: date) -> list[PersistedOccurrence | VirtualOccurrence]:
        return calendar.occurrences_on(self._snapshot.index, day)

    def occurrences_for_task(self, task_id: str) -> list[PersistedOccurrence | VirtualOccurrence]:
        return calendar.occurrences_for_task(self._snapshot.index, task_id)

    def day_detail(self, day: date) -> DayDetail:
        snapshot = self._snapshot
        return calendar.day_detail(snapshot.tasks, snapshot.index, day)

    def stats(self) -> ScheduleStats:
        return self._snapshot.stats

"""Missed-task sweep: reconcile overdue upcoming tasks into the missed status."""

import logging

from src.core import db_client
from src.core.clock import Clock, system_clock
from src.core.config import Constants
from src.core.dates import parse_date
from src.core.db_client import sanitize_param
from src.core.logging import log_with_context, span
from src.domain.scheduled_task import TaskStatus
from src.modules.schedule.state_machine import can_transition


logger = logging.getLogger(__name__)


async def sweep_missed_tasks(*, clock: Clock = system_clock, user_id: str | None = None) -> int:
    """Mark every upcoming task scheduled before today as missed.

    Reads upcoming tasks once and writes all transitions in one atomic batch.
    The batch only touches rows that are still upcoming, so repeated or
    concurrent sweeps find nothing left to do and return 0. Failures are
    logged and reported as 0; a failed batch leaves no partial changes.

    Args:
        clock: Source of today's date
        user_id: Restrict the sweep to one owner (all owners when None)

    Returns:
        Number of tasks transitioned to missed
    """
    with span("schedule_sweeper.sweep_missed_tasks"):
        today = clock.today()
        filters = [f'status = "{TaskStatus.UPCOMING}"']
        if user_id:
            filters.append(f'user_id = "{sanitize_param(user_id)}"')

        try:
            upcoming = await db_client.list_all_records(
                collection=Constants.SCHEDULED_TASKS_COLLECTION,
                filter_query=" && ".join(filters),
            )

            overdue = [
                record
                for record in upcoming
                if parse_date(record["scheduled_date"]) < today
                and can_transition(TaskStatus(record["status"]), TaskStatus.MISSED, by_sweeper=True)
            ]
            if not overdue:
                return 0

            transitioned = await db_client.batch_update_records(
                collection=Constants.SCHEDULED_TASKS_COLLECTION,
                updates=[(record["id"], {"status": TaskStatus.MISSED}) for record in overdue],
                guard={"status": TaskStatus.UPCOMING},
            )
        except Exception as e:
            log_with_context(logger, "error", f"Missed-task sweep failed: {e}", user_id=user_id)
            return 0

        if transitioned:
            log_with_context(logger, "info", f"Updated {transitioned} tasks to missed status", user_id=user_id)
        return transitioned


async def run_scheduled_sweep() -> int:
    """Entry point for the periodic sweep job (all owners)."""
    logger.info("Running missed-task sweep job")
    return await sweep_missed_tasks()

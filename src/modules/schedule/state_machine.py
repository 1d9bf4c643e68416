"""Status transition functions for scheduled task lifecycle management."""

import logging
from typing import Any

from src.core import db_client
from src.core.config import Constants
from src.core.errors import InvalidTransitionError
from src.core.logging import span
from src.domain.scheduled_task import TaskStatus


logger = logging.getLogger(__name__)


# Allowed transitions for user actions; MISSED is only reached through the sweeper
USER_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.UPCOMING: {TaskStatus.COMPLETED},
    TaskStatus.COMPLETED: {TaskStatus.UPCOMING},
    TaskStatus.MISSED: {TaskStatus.UPCOMING},
}

SWEEPER_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.UPCOMING: {TaskStatus.MISSED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.MISSED: set(),
}


def can_transition(current: TaskStatus, target: TaskStatus, *, by_sweeper: bool = False) -> bool:
    """Return True if the status change is legal for the given actor."""
    transitions = SWEEPER_TRANSITIONS if by_sweeper else USER_TRANSITIONS
    return target in transitions.get(current, set())


def ensure_transition(*, task_id: str, current: TaskStatus, target: TaskStatus) -> None:
    """Raise InvalidTransitionError unless a user may move the task to ``target``."""
    if not can_transition(current, target):
        msg = f"Cannot mark task {task_id} as {target}: it is {current}"
        raise InvalidTransitionError(msg)


async def _transition(*, task_id: str, target: TaskStatus) -> dict[str, Any]:
    task = await db_client.get_record(collection=Constants.SCHEDULED_TASKS_COLLECTION, record_id=task_id)
    ensure_transition(task_id=task_id, current=TaskStatus(task["status"]), target=target)

    updated_record = await db_client.update_record(
        collection=Constants.SCHEDULED_TASKS_COLLECTION,
        record_id=task_id,
        data={"status": target},
    )

    logger.info("Transitioned task %s to %s", task_id, target)
    return updated_record


async def transition_to_completed(*, task_id: str) -> dict[str, Any]:
    """Mark an upcoming task as completed."""
    with span("schedule_state_machine.transition_to_completed"):
        return await _transition(task_id=task_id, target=TaskStatus.COMPLETED)


async def transition_to_upcoming(*, task_id: str) -> dict[str, Any]:
    """Reset a completed or missed task back to upcoming (undo or reschedule)."""
    with span("schedule_state_machine.transition_to_upcoming"):
        return await _transition(task_id=task_id, target=TaskStatus.UPCOMING)

"""HTTP interface for scheduled tasks and the calendar."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status
from fastapi.responses import JSONResponse

from src.core.errors import (
    DatabaseError,
    InvalidTransitionError,
    OperationInProgressError,
    RecordNotFoundError,
    ScheduleError,
    ScheduleValidationError,
    VirtualOccurrenceError,
    classify_error_with_response,
)
from src.domain.create_models import ScheduledTaskCreate
from src.domain.scheduled_task import ScheduledTask, TaskStatus
from src.domain.update_models import ScheduledTaskUpdate
from src.models.service_models import DayDetail, MonthSummary, OccurrenceDates, ScheduleStats, SweepResult
from src.modules.schedule import calendar
from src.modules.schedule.recurrence import generate_occurrence_dates
from src.modules.schedule.service import ScheduleController
from src.modules.schedule.view import ScheduleSnapshot


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["schedule"])

ERROR_STATUS_CODES: dict[type[ScheduleError], int] = {
    ScheduleValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    OperationInProgressError: status.HTTP_409_CONFLICT,
    VirtualOccurrenceError: status.HTTP_400_BAD_REQUEST,
    RecordNotFoundError: status.HTTP_404_NOT_FOUND,
    DatabaseError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def schedule_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Render engine errors as structured responses."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    error = classify_error_with_response(exc)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("schedule_request_failed", extra={"error": str(exc), "code": error.code})
    return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))


def get_controller(request: Request) -> ScheduleController:
    """Return the lifecycle controller owned by the running app."""
    return request.app.state.schedule_controller


async def _load_snapshot(controller: ScheduleController) -> ScheduleSnapshot:
    # Same load sequence as a live view: reconcile first, then read
    await controller.sweep()
    tasks = await controller.list_tasks()
    return ScheduleSnapshot.build(1, tuple(tasks))


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(
    data: ScheduledTaskCreate,
    controller: ScheduleController = Depends(get_controller),
) -> ScheduledTask:
    """Create a scheduled task."""
    return await controller.create_task(data)


@router.get("/tasks")
async def list_tasks(
    status_filter: list[TaskStatus] | None = Query(default=None, alias="status"),
    controller: ScheduleController = Depends(get_controller),
) -> list[ScheduledTask]:
    """List tasks, optionally filtered by one or more statuses."""
    return await controller.list_tasks(statuses=status_filter)


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, controller: ScheduleController = Depends(get_controller)) -> ScheduledTask:
    """Fetch one task."""
    return await controller.get_task(task_id)


@router.patch("/tasks/{task_id}")
async def update_task(
    task_id: str,
    changes: ScheduledTaskUpdate,
    controller: ScheduleController = Depends(get_controller),
) -> ScheduledTask:
    """Apply a partial edit to a task."""
    return await controller.update_task(task_id, changes)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, controller: ScheduleController = Depends(get_controller)) -> Response:
    """Delete a task."""
    await controller.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/tasks/{task_id}/complete")
async def complete_task(task_id: str, controller: ScheduleController = Depends(get_controller)) -> ScheduledTask:
    """Mark an upcoming task as completed."""
    return await controller.complete_task(task_id)


@router.post("/tasks/{task_id}/reset")
async def reset_task(task_id: str, controller: ScheduleController = Depends(get_controller)) -> ScheduledTask:
    """Return a completed or missed task to upcoming."""
    return await controller.reset_task(task_id)


@router.get("/tasks/{task_id}/occurrences")
async def get_occurrences(task_id: str, controller: ScheduleController = Depends(get_controller)) -> OccurrenceDates:
    """List the generated occurrence dates of a task."""
    task = await controller.get_task(task_id)
    return OccurrenceDates(task_id=task.id, dates=generate_occurrence_dates(task))


@router.get("/calendar/day/{day}")
async def get_day(day: date, controller: ScheduleController = Depends(get_controller)) -> DayDetail:
    """Return counts, statuses and ordered events for one day."""
    snapshot = await _load_snapshot(controller)
    return calendar.day_detail(snapshot.tasks, snapshot.index, day)


@router.get("/calendar/{year}/{month}")
async def get_month(
    year: int,
    month: int = Path(ge=1, le=12),
    controller: ScheduleController = Depends(get_controller),
) -> MonthSummary:
    """Summarize the days of a month that have events."""
    snapshot = await _load_snapshot(controller)
    return calendar.summarize_month(snapshot.tasks, year, month, index=snapshot.index)


@router.get("/stats")
async def get_stats(controller: ScheduleController = Depends(get_controller)) -> ScheduleStats:
    """Return status totals over the stored tasks."""
    snapshot = await _load_snapshot(controller)
    return snapshot.stats


@router.post("/sweep")
async def run_sweep(controller: ScheduleController = Depends(get_controller)) -> SweepResult:
    """Reconcile overdue upcoming tasks into missed."""
    return SweepResult(transitioned=await controller.sweep())

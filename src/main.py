"""recurra - Scheduled tasks with recurrence and a calendar view."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import constants, settings
from src.core.db_client import close_connection, init_db
from src.core.errors import ScheduleError
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.module_registry import get_module, register_module
from src.core.scheduler import scheduler, start_scheduler, stop_scheduler
from src.interface.schedule_router import router as schedule_router, schedule_error_handler
from src.modules.schedule import ScheduleModule
from src.modules.schedule.service import ScheduleController
from src.services.notification_service import NotificationScheduler


logger = logging.getLogger(__name__)


def register_modules() -> None:
    """Register feature modules once per process."""
    if get_module("schedule") is None:
        register_module(ScheduleModule())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so startup logs are captured
    configure_logfire()

    register_modules()

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    app.state.schedule_controller = ScheduleController(
        user_id=settings.default_user_id,
        notifier=NotificationScheduler(scheduler),
    )

    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()
    await close_connection()


app = FastAPI(
    title="recurra",
    description="Scheduled tasks with weekly and monthly recurrence",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(schedule_router)
app.add_exception_handler(ScheduleError, schedule_error_handler)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=constants.HTTP_OK)


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with job schedule."""
    jobs = [
        {
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        }
        for job in scheduler.get_jobs()
    ]
    healthy = scheduler.running
    return JSONResponse(
        content={"status": "healthy" if healthy else "stopped", "jobs": jobs},
        status_code=constants.HTTP_OK if healthy else constants.HTTP_SERVICE_UNAVAILABLE,
    )

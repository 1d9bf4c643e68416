"""Scheduler for automated jobs (missed-task sweeps, reminder delivery)."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.module import ScheduledJob
from src.core.module_registry import get_all_scheduled_jobs


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


def register_job(job: ScheduledJob, *, target: AsyncIOScheduler | None = None) -> None:
    """Add a module's cron job to the scheduler, replacing any previous definition."""
    sched = target or scheduler
    sched.add_job(
        job.func,
        trigger=CronTrigger.from_crontab(job.cron),
        id=job.id,
        name=job.name,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info("Scheduled job %s (%s)", job.id, job.cron)


def start_scheduler() -> None:
    """Start the scheduler and register all module jobs.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    for job in get_all_scheduled_jobs():
        register_job(job)

    scheduler.start()
    logger.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))


def stop_scheduler() -> None:
    """Stop the scheduler gracefully.

    This should be called during FastAPI app shutdown.
    """
    if scheduler.running:
        logger.info("Stopping scheduler")
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

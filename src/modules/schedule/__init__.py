"""Schedule module for dated and recurring tasks."""

from src.core.config import settings
from src.core.module import ScheduledJob


class ScheduleModule:
    """Schedule module for calendar-based task planning.

    Provides:
    - Recurrence expansion for weekly and monthly tasks
    - Per-day counts and month summaries for the calendar
    - Validated task lifecycle (upcoming, completed, missed)
    - Periodic sweep of overdue tasks into missed
    """

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "schedule"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Scheduled tasks with recurrence, calendar aggregation and missed-task reconciliation"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "scheduled_tasks": """CREATE TABLE IF NOT EXISTS scheduled_tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        scheduled_date TEXT NOT NULL,
        scheduled_time TEXT,
        due_date TEXT,
        repeat_frequency TEXT NOT NULL DEFAULT 'none'
            CHECK (repeat_frequency IN ('none', 'daily', 'weekly', 'monthly')),
        notification_enabled INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'upcoming'
            CHECK (status IN ('upcoming', 'completed', 'missed')),
        notification_handle TEXT
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_scheduled_tasks_user_id ON scheduled_tasks (user_id)",
            "CREATE INDEX IF NOT EXISTS idx_scheduled_tasks_status ON scheduled_tasks (status)",
            "CREATE INDEX IF NOT EXISTS idx_scheduled_tasks_scheduled_date ON scheduled_tasks (scheduled_date)",
        ]

    def get_scheduled_jobs(self) -> list[ScheduledJob]:
        """Return scheduled jobs for this module."""
        from src.modules.schedule.sweeper import run_scheduled_sweep

        return [
            ScheduledJob(
                id="schedule_missed_sweep",
                name="Missed-task sweep",
                cron=settings.sweep_cron,
                func=run_scheduled_sweep,
            ),
        ]

"""Plugin interface for feature modules.

A module owns its tables and the periodic jobs that maintain them. Nothing
else needs to know the module's internals to create its schema at startup.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from pydantic import BaseModel


class ScheduledJob(BaseModel):
    """A cron-triggered coroutine contributed by a module."""

    id: str
    name: str
    cron: str
    func: Callable[[], Awaitable[object]]


class Module(Protocol):
    """Interface every feature module implements."""

    @property
    def name(self) -> str:
        """Unique registry key."""
        ...

    @property
    def description(self) -> str: ...

    def get_table_schemas(self) -> dict[str, str]:
        """Map table name to its CREATE TABLE IF NOT EXISTS statement."""
        ...

    def get_indexes(self) -> list[str]:
        """CREATE INDEX IF NOT EXISTS statements for this module's tables."""
        ...

    def get_scheduled_jobs(self) -> list[ScheduledJob]: ...

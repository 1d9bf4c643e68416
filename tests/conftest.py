"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import AsyncIterator
from datetime import date, datetime

import pytest

from src.core import db_client
from src.core.config import settings
from src.core.module_registry import get_module, register_module, unregister_module
from src.modules.schedule import ScheduleModule


logger = logging.getLogger(__name__)


class FixedClock:
    """Clock frozen at a given instant; tests move it explicitly."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def set(self, now: datetime) -> None:
        self._now = now


@pytest.fixture
def fixed_clock() -> FixedClock:
    """Clock frozen at 2024-01-15 10:00 local time."""
    return FixedClock(datetime(2024, 1, 15, 10, 0))


@pytest.fixture
def schedule_module():
    """Register the schedule module for the duration of a test."""
    registered_here = get_module("schedule") is None
    if registered_here:
        register_module(ScheduleModule())
    yield get_module("schedule")
    if registered_here:
        unregister_module("schedule")


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch, schedule_module) -> AsyncIterator[str]:
    """Provide an initialized SQLite database file in a temp directory."""
    db_path = str(tmp_path / "recurra_test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    logger.info("Initialized test database at %s", db_path)
    yield db_path
    await db_client.close_connection()

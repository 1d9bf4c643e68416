"""Pytest configuration and fixtures for unit tests."""

import pytest

from tests.unit.factories import make_task
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.list_all_records", in_memory_db.list_all_records)
    monkeypatch.setattr("src.core.db_client.batch_update_records", in_memory_db.batch_update_records)
    monkeypatch.setattr("src.core.db_client.subscribe_records", in_memory_db.subscribe_records)

    return in_memory_db


@pytest.fixture
def task_factory():
    """Factory for ScheduledTask objects.

    Usage:
        task = task_factory(id="2", repeat_frequency=RepeatFrequency.WEEKLY)
    """
    return make_task

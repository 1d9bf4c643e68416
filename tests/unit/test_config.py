"""Tests for configuration validation."""

import pytest
from pydantic import ValidationError

from src.core.config import Constants, Settings


def test_defaults() -> None:
    """Test the recurrence and reminder defaults."""
    settings = Settings(_env_file=None)

    assert settings.recurrence_lookahead_months == 3
    assert settings.weekly_occurrence_cap == 52
    assert settings.monthly_occurrence_cap == 24
    assert settings.default_notification_hour == 9
    assert settings.submit_cooldown_seconds == 0.5


def test_invalid_sweep_cron_rejected() -> None:
    """Test sweep_cron is validated as a CRON expression."""
    with pytest.raises(ValidationError, match="Invalid sweep_cron"):
        Settings(sweep_cron="every fifteen minutes")


def test_valid_sweep_cron_accepted() -> None:
    settings = Settings(sweep_cron="0 * * * *")

    assert settings.sweep_cron == "0 * * * *"


def test_notification_hour_bounds() -> None:
    with pytest.raises(ValidationError):
        Settings(default_notification_hour=24)


def test_env_override(monkeypatch) -> None:
    """Test settings are read from environment variables."""
    monkeypatch.setenv("RECURRENCE_LOOKAHEAD_MONTHS", "6")

    assert Settings().recurrence_lookahead_months == 6


def test_virtual_key_separator() -> None:
    assert Constants.VIRTUAL_KEY_SEPARATOR == "-recurring-"

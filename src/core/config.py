"""Configuration management for recurra."""

from croniter import croniter
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/recurra.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="production", description="Deployment environment reported to Logfire")

    # HTTP surface (authentication is handled upstream)
    default_user_id: str = Field(default="local", description="Owner id used when the request carries none")

    # Recurrence Configuration
    recurrence_lookahead_months: int = Field(
        default=3, ge=1, description="Months to look ahead for recurring tasks without a due date"
    )
    weekly_occurrence_cap: int = Field(default=52, ge=1, description="Maximum weekly occurrences generated")
    monthly_occurrence_cap: int = Field(default=24, ge=1, description="Maximum monthly occurrences generated")

    # Notification Configuration
    default_notification_hour: int = Field(
        default=9, ge=0, le=23, description="Hour of day used for reminders of untimed tasks"
    )

    # Sweeper Configuration
    sweep_cron: str = Field(default="*/15 * * * *", description="CRON schedule for the missed-task sweep")

    # Lifecycle Controller
    submit_cooldown_seconds: float = Field(
        default=0.5, ge=0, description="Cooldown before a finished write accepts a new submission"
    )

    @field_validator("sweep_cron")
    @classmethod
    def _validate_sweep_cron(cls, value: str) -> str:
        if not croniter.is_valid(value):
            msg = f"Invalid sweep_cron expression: {value}"
            raise ValueError(msg)
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Store collections
    SCHEDULED_TASKS_COLLECTION: str = "scheduled_tasks"

    # Wire formats
    DATE_FORMAT: str = "%Y-%m-%d"
    TIME_FORMAT: str = "%H:%M"

    # Virtual occurrence keys: "{source_id}-recurring-{YYYY-MM-DD}"
    VIRTUAL_KEY_SEPARATOR: str = "-recurring-"

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500  # Snapshot queries fetch the whole collection page by page

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_SERVICE_UNAVAILABLE: int = 503


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()

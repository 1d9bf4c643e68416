"""Input validation for creating and editing scheduled tasks."""

from datetime import date, datetime, time

from src.core.clock import Clock
from src.core.errors import ScheduleValidationError, ValidationCode
from src.domain.scheduled_task import RepeatFrequency


GENERATED_FREQUENCIES = frozenset({RepeatFrequency.NONE, RepeatFrequency.WEEKLY, RepeatFrequency.MONTHLY})


def validate_schedule(
    *,
    title: str,
    scheduled_date: date,
    scheduled_time: time | None,
    due_date: date | None,
    repeat_frequency: RepeatFrequency,
    clock: Clock,
) -> None:
    """Check task fields in order; the first failing rule raises.

    Dates compare as calendar dates. Only a time on today's date is compared
    against the current wall-clock instant.

    Raises:
        ScheduleValidationError: With the code of the first rule that failed
    """
    if not title.strip():
        raise ScheduleValidationError(ValidationCode.EMPTY_TITLE, "Please enter an event title.")

    now = clock.now()
    today = clock.today()

    if scheduled_date < today:
        raise ScheduleValidationError(
            ValidationCode.PAST_DATE,
            "Cannot schedule events for past dates. Please select today or a future date.",
        )

    if scheduled_date == today and scheduled_time is not None:
        if datetime.combine(scheduled_date, scheduled_time) < now:
            raise ScheduleValidationError(
                ValidationCode.PAST_TIME,
                "Cannot schedule events for past times. Please select a future time for today.",
            )

    if due_date is not None and due_date < scheduled_date:
        raise ScheduleValidationError(
            ValidationCode.DUE_BEFORE_SCHEDULED,
            "Due date must not be before the scheduled date.",
        )

    if repeat_frequency not in GENERATED_FREQUENCIES:
        raise ScheduleValidationError(
            ValidationCode.UNSUPPORTED_FREQUENCY,
            f"Repeat frequency '{repeat_frequency}' is not supported. Choose none, weekly or monthly.",
        )

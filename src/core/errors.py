"""Error taxonomy and classification for the scheduling engine."""

from enum import Enum, StrEnum

from pydantic import BaseModel


class ScheduleError(Exception):
    """Base class for all errors raised by the scheduling engine."""


class ValidationCode(StrEnum):
    """Reasons a create/update request is rejected."""

    EMPTY_TITLE = "EMPTY_TITLE"
    PAST_DATE = "PAST_DATE"
    PAST_TIME = "PAST_TIME"
    DUE_BEFORE_SCHEDULED = "DUE_BEFORE_SCHEDULED"
    UNSUPPORTED_FREQUENCY = "UNSUPPORTED_FREQUENCY"


class ScheduleValidationError(ScheduleError, ValueError):
    """Raised before any store call when task input is invalid."""

    def __init__(self, code: ValidationCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class InvalidTransitionError(ScheduleError, ValueError):
    """Raised when a status change is not allowed from the current status."""


class VirtualOccurrenceError(ScheduleError, ValueError):
    """Raised when a synthesized recurring occurrence is used as a stored record."""


class RecordNotFoundError(ScheduleError, KeyError):
    """Raised when a record id does not exist in the store."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class DatabaseError(ScheduleError, RuntimeError):
    """Raised when the underlying store fails."""


class OperationInProgressError(ScheduleError, RuntimeError):
    """Raised when the same write operation is submitted while one is in flight."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Input errors
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_VIRTUAL_OCCURRENCE = "ERR_VIRTUAL_OCCURRENCE"
    ERR_OPERATION_IN_PROGRESS = "ERR_OPERATION_IN_PROGRESS"

    # Lookup errors
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"

    # Store errors
    ERR_STORE_UNAVAILABLE = "ERR_STORE_UNAVAILABLE"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Validation messages are surfaced verbatim so the caller can correct the
    pending form; store failures get a generic retryable message.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, ScheduleValidationError):
        return ErrorResponse(
            code=f"{ErrorCode.ERR_VALIDATION}:{exception.code}",
            message=exception.message,
            suggestion="Correct the highlighted field and save again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidTransitionError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message="This action cannot be performed in the event's current state.",
            suggestion="Refresh the schedule and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, VirtualOccurrenceError):
        return ErrorResponse(
            code=ErrorCode.ERR_VIRTUAL_OCCURRENCE,
            message="Recurring instances cannot be changed individually.",
            suggestion="Edit the original event instead.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, OperationInProgressError):
        return ErrorResponse(
            code=ErrorCode.ERR_OPERATION_IN_PROGRESS,
            message="This change is already being saved.",
            suggestion="Wait a moment before submitting again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, RecordNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_TASK_NOT_FOUND,
            message="I couldn't find that event.",
            suggestion="It may have been deleted. Refresh the schedule.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, DatabaseError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORE_UNAVAILABLE,
            message="Failed to save your changes.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )

"""Domain error types and their classification into API responses."""

from enum import Enum

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from src.core.config import constants


class TaskTrackerError(Exception):
    """Base class for every error raised by the task store."""


class NotFoundError(TaskTrackerError):
    """Referenced task, epic or subtask does not exist."""


class InvalidArgumentError(TaskTrackerError, ValueError):
    """Operation was rejected because of its input (bad id, self reference, malformed row)."""


class TimeConflictError(InvalidArgumentError):
    """Scheduled interval overlaps an interval that is already stored."""


class InvalidStateError(TaskTrackerError):
    """A managed entity was mutated outside the task store."""


class PersistenceError(TaskTrackerError):
    """Reading or writing the backing file failed."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_TIME_CONFLICT = "ERR_TIME_CONFLICT"
    ERR_INVALID_ARGUMENT = "ERR_INVALID_ARGUMENT"
    ERR_INVALID_JSON = "ERR_INVALID_JSON"
    ERR_INVALID_STATE = "ERR_INVALID_STATE"
    ERR_PERSISTENCE = "ERR_PERSISTENCE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def classify_error_with_response(exception: Exception) -> tuple[int, ErrorResponse]:  # noqa: PLR0911
    """Classify an error and return the HTTP status plus a structured response.

    Args:
        exception: The exception raised while handling a request

    Returns:
        Tuple of (http_status_code, ErrorResponse)
    """
    if isinstance(exception, NotFoundError):
        return constants.HTTP_NOT_FOUND, ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=str(exception) or "Not Found",
            suggestion="Use GET /tasks, /epics or /subtasks to see existing ids.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, TimeConflictError):
        return constants.HTTP_NOT_ACCEPTABLE, ErrorResponse(
            code=ErrorCode.ERR_TIME_CONFLICT,
            message="Task has time intersection",
            suggestion="Pick a start time outside the intervals listed by GET /prioritized.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, ValidationError | RequestValidationError):
        return constants.HTTP_BAD_REQUEST, ErrorResponse(
            code=ErrorCode.ERR_INVALID_JSON,
            message="Invalid JSON",
            suggestion="Check the request body against the task schema.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidArgumentError):
        return constants.HTTP_BAD_REQUEST, ErrorResponse(
            code=ErrorCode.ERR_INVALID_ARGUMENT,
            message=str(exception) or "Bad Request",
            suggestion="Omit the id (or send 0) to let the server assign one.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidStateError):
        return constants.HTTP_SERVER_ERROR, ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE,
            message="Internal server error",
            suggestion="Please try again later. If the problem persists, contact support.",
            severity=ErrorSeverity.HIGH,
        )

    if isinstance(exception, PersistenceError):
        return constants.HTTP_SERVER_ERROR, ErrorResponse(
            code=ErrorCode.ERR_PERSISTENCE,
            message="Internal server error",
            suggestion="Check that the storage file is writable.",
            severity=ErrorSeverity.CRITICAL,
        )

    return constants.HTTP_SERVER_ERROR, ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="Internal server error",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )

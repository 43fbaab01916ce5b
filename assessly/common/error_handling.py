"""
Error Handling

Errors raised by the domain and service layers. Each error class carries a
stable ``ErrorCode`` that the API turns into an HTTP status and the
``{"status": "error", "code", "message", "details"}`` envelope. Storage and
framework exceptions that escape a service are wrapped by
``convert_exception`` so the envelope never leaks driver internals.
"""

import logging
import traceback
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from datetime import datetime
from pydantic import BaseModel, Field, validator
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("assessly.errors")


class ErrorSeverity(Enum):
    """How loudly an error is logged"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCode(Enum):
    """Codes exposed in the error envelope"""
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"
    AUTHENTICATION_ERROR = "authentication_error"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    DATABASE_ERROR = "database_error"


HTTP_STATUS_BY_CODE = {
    ErrorCode.UNKNOWN_ERROR: 500,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.AUTHENTICATION_ERROR: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.DATABASE_ERROR: 500,
}

_LOG_LEVEL_BY_SEVERITY = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ErrorInfo(BaseModel):
    """Serializable snapshot of an error, used for logs and responses"""
    code: ErrorCode
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Dict[str, Any] = Field(default_factory=dict)
    exception_type: Optional[str] = None
    stack_trace: Optional[List[str]] = None
    context: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        use_enum_values = True

    @validator('stack_trace', pre=True)
    def split_stack_trace(cls, v):
        if isinstance(v, str):
            return v.splitlines()
        return v


class AssesslyError(Exception):
    """
    Base class for errors the API reports to clients.

    Subclasses choose ``code`` and ``severity`` as class attributes; the
    instance attributes set here override them for ad-hoc errors.

    Args:
        message: Client-facing message
        code: Error code (defaults to the class code)
        severity: Log severity (defaults to the class severity)
        details: Structured details returned in the envelope
        cause: Underlying exception, logged but never returned
        context: Request or operation context, logged but never returned
    """

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        severity: Optional[ErrorSeverity] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if severity is not None:
            self.severity = severity
        self.details = dict(details or {})
        self.cause = cause
        self.context = dict(context or {})
        self.timestamp = datetime.now()

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CODE.get(self.code, 500)

    def to_error_info(self, include_stack_trace: bool = False) -> ErrorInfo:
        details = dict(self.details)
        if self.cause is not None:
            details["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}
        return ErrorInfo(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            severity=self.severity,
            details=details,
            exception_type=type(self).__name__,
            stack_trace=traceback.format_exc() if include_stack_trace else None,
            context=self.context
        )

    def __str__(self) -> str:
        text = f"{self.code.value}: {self.message}"
        if self.details:
            text += f" {self.details}"
        if self.cause is not None:
            text += f" (caused by {type(self.cause).__name__}: {self.cause})"
        return text


class ValidationError(AssesslyError):
    """Malformed input: bad question data, unknown permission names, bad answers"""
    code = ErrorCode.VALIDATION_ERROR
    severity = ErrorSeverity.WARNING

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details, cause=cause, context=context)


class AuthenticationError(AssesslyError):
    """Missing, expired or unverifiable bearer token"""
    code = ErrorCode.AUTHENTICATION_ERROR
    severity = ErrorSeverity.WARNING

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        super().__init__(message, details=details, cause=cause)


class ForbiddenError(AssesslyError):
    """
    The caller is known but may not do this.

    Raised for missing permissions, starting a test one is not assigned to,
    a closed or not-yet-open window, a wrong attempt token, another user's
    attempt and retaking a completed test.
    """
    code = ErrorCode.FORBIDDEN
    severity = ErrorSeverity.WARNING

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details, context=context)


class NotFoundError(AssesslyError):
    """A question, test, group, role, assignment or attempt id that doesn't exist"""
    code = ErrorCode.NOT_FOUND
    severity = ErrorSeverity.WARNING

    def __init__(self, resource_type: str, resource_id: Any, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details.update(resource_type=resource_type, resource_id=resource_id)
        super().__init__(f"{resource_type} not found", details=details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(AssesslyError):
    """The target is in the wrong state, e.g. submitting a finished attempt"""
    code = ErrorCode.CONFLICT
    severity = ErrorSeverity.WARNING

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details, cause=cause, context=context)


class DuplicateError(ConflictError):
    """A unique name or a second live attempt for the same (test, assignment, user)"""

    def __init__(self, resource_type: str, identifier: Any, cause: Optional[Exception] = None):
        super().__init__(
            f"Duplicate {resource_type}: {identifier}",
            details={"resource_type": resource_type, "identifier": identifier},
            cause=cause
        )
        self.resource_type = resource_type
        self.identifier = identifier


class DatabaseError(AssesslyError):
    """Unexpected storage failure"""
    code = ErrorCode.DATABASE_ERROR
    severity = ErrorSeverity.ERROR

    def __init__(self, message: str, cause: Optional[Exception] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, cause=cause, context=context)


def convert_exception(exception: Exception, context: Optional[Dict[str, Any]] = None) -> AssesslyError:
    """
    Wrap any exception as an ``AssesslyError``.

    ``ValueError`` and ``TypeError`` from model constructors become
    validation errors; SQLAlchemy failures become database errors with a
    generic message. Application errors pass through with ``context`` merged.
    """
    if isinstance(exception, AssesslyError):
        exception.context.update(context or {})
        return exception
    if isinstance(exception, (ValueError, TypeError)):
        return ValidationError(str(exception), cause=exception, context=context)
    if isinstance(exception, SQLAlchemyError):
        return DatabaseError("Storage operation failed", cause=exception, context=context)
    return AssesslyError(str(exception) or type(exception).__name__, cause=exception, context=context)


def error_response(error: Union[AssesslyError, Exception], include_details: bool = True) -> Dict[str, Any]:
    """
    Build the error envelope for ``error``.

    The ``cause`` never reaches the client; ``details`` is omitted when empty.
    """
    error = convert_exception(error)
    response = {
        "status": "error",
        "code": error.code.value,
        "message": error.message
    }
    if include_details and error.details:
        response["details"] = dict(error.details)
    return response


def log_error(
    error: Union[AssesslyError, Exception],
    level: Optional[int] = None,
    include_stack_trace: bool = False,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an error at a level derived from its severity.

    Args:
        error: Error to log
        level: Explicit logging level
        include_stack_trace: Attach the current exception's traceback
        context: Extra context merged into the error's
    """
    error = convert_exception(error, context=context)
    if level is None:
        level = _LOG_LEVEL_BY_SEVERITY.get(error.severity, logging.ERROR)

    message = f"[{error.code.value}] {error.message}"
    if error.context:
        message += " (" + ", ".join(f"{k}={v}" for k, v in error.context.items()) + ")"
    if error.cause is not None:
        message += f" caused by {type(error.cause).__name__}: {error.cause}"

    info = error.to_error_info(include_stack_trace=include_stack_trace)
    logger.log(
        level,
        message,
        exc_info=include_stack_trace,
        extra={"context": {"error": info.dict(exclude={"message", "stack_trace"})}}
    )

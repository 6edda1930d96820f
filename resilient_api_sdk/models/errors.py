"""
Error models for the request layer.

``EnhancedError`` is the one failure type that crosses component boundaries.
Severity, recoverability and the recovery suggestion are derived from the
error kind unless a caller overrides them explicitly.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Why a request failed."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    SERVER = "server"
    BUSINESS_LOGIC = "business_logic"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    """How urgently an error needs attention."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


KIND_SEVERITY: Dict[ErrorKind, ErrorSeverity] = {
    ErrorKind.AUTHENTICATION: ErrorSeverity.HIGH,
    ErrorKind.AUTHORIZATION: ErrorSeverity.HIGH,
    ErrorKind.SERVER: ErrorSeverity.HIGH,
    ErrorKind.NETWORK: ErrorSeverity.MEDIUM,
    ErrorKind.TIMEOUT: ErrorSeverity.MEDIUM,
    ErrorKind.VALIDATION: ErrorSeverity.MEDIUM,
    ErrorKind.BUSINESS_LOGIC: ErrorSeverity.MEDIUM,
    ErrorKind.NOT_FOUND: ErrorSeverity.LOW,
}

# Kinds a user can act on (retry affordance)
RECOVERABLE_KINDS = frozenset({
    ErrorKind.NETWORK,
    ErrorKind.TIMEOUT,
    ErrorKind.AUTHENTICATION,
    ErrorKind.VALIDATION,
    ErrorKind.BUSINESS_LOGIC,
})

RECOVERY_SUGGESTIONS: Dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Please check your internet connection and try again.",
    ErrorKind.TIMEOUT: "The server is taking too long to respond. Please try again later.",
    ErrorKind.AUTHENTICATION: "Your session may have expired. Please sign in again.",
    ErrorKind.AUTHORIZATION: "You don't have permission to access this resource.",
    ErrorKind.VALIDATION: "Please check your input and try again.",
    ErrorKind.NOT_FOUND: "The requested resource could not be found.",
    ErrorKind.SERVER: "There was a problem with the server. Please try again later.",
    ErrorKind.BUSINESS_LOGIC: (
        "There was a problem processing your request. "
        "Please check the details and try again."
    ),
}
DEFAULT_RECOVERY_SUGGESTION = "An unexpected error occurred. Please try again."


def severity_for(kind: ErrorKind) -> ErrorSeverity:
    return KIND_SEVERITY.get(kind, ErrorSeverity.MEDIUM)


def is_recoverable(kind: ErrorKind) -> bool:
    return kind in RECOVERABLE_KINDS


def recovery_suggestion_for(kind: ErrorKind) -> str:
    return RECOVERY_SUGGESTIONS.get(kind, DEFAULT_RECOVERY_SUGGESTION)


class ErrorBodyVariant(str, Enum):
    """Which known server error body shape was recognised."""
    MESSAGE = "message"
    ERROR = "error"
    ERROR_LIST = "error_list"
    VALIDATION = "validation"
    UNPARSED = "unparsed"


class StructuredErrorData(BaseModel):
    """Parsed server error payload."""
    model_config = ConfigDict(frozen=True)

    variant: ErrorBodyVariant = ErrorBodyVariant.UNPARSED
    message: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    errors: List[str] = Field(default_factory=list)
    validation_errors: Dict[str, List[str]] = Field(default_factory=dict)
    raw: Any = None

    def display_message(self) -> Optional[str]:
        """Best human-readable message carried by the payload."""
        if self.message:
            return self.message
        if self.error:
            return self.error
        if self.validation_errors:
            parts = [
                f"{field}: {msg}"
                for field, messages in self.validation_errors.items()
                for msg in messages
            ]
            if parts:
                return ". ".join(parts)
        if self.errors:
            return ". ".join(self.errors)
        return None


class EnhancedError(Exception):
    """
    A classified request failure.

    Attributes:
        kind: Taxonomy label
        severity: Derived from kind unless overridden
        http_status: HTTP status code, if any
        structured_data: Parsed server payload, if any
        url: Target URL of the failed request
        method: HTTP method of the failed request
        timestamp: When the failure was classified (UTC)
        operation_id: Correlation id shared by every attempt of one operation
        recoverable: Whether the user can act on the error
        recovery_suggestion: Actionable text for the user
        retry_count: Attempt number that produced this error
        original_error: Wrapped cause
        request_data: Request body that was sent, if any
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        *,
        severity: Optional[ErrorSeverity] = None,
        recoverable: Optional[bool] = None,
        recovery_suggestion: Optional[str] = None,
        http_status: Optional[int] = None,
        structured_data: Optional[StructuredErrorData] = None,
        url: Optional[str] = None,
        method: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        operation_id: Optional[str] = None,
        retry_count: int = 0,
        original_error: Optional[BaseException] = None,
        request_data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = ErrorKind(kind)
        self.severity = severity if severity is not None else severity_for(self.kind)
        self.recoverable = recoverable if recoverable is not None else is_recoverable(self.kind)
        self.recovery_suggestion = recovery_suggestion or recovery_suggestion_for(self.kind)
        self.http_status = http_status
        self.structured_data = structured_data
        self.url = url
        self.method = method
        self.timestamp = timestamp or datetime.now(timezone.utc)
        self.operation_id = operation_id
        self.retry_count = retry_count
        self.original_error = original_error
        self.request_data = request_data

    @property
    def offers_retry(self) -> bool:
        """Whether a "Try again" affordance should be shown."""
        return self.recoverable

    @property
    def user_message(self) -> str:
        """Recovery suggestion for recoverable errors, else the message."""
        if self.recoverable:
            return self.recovery_suggestion
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Log and JSON friendly view."""
        return {
            "message": self.message,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "http_status": self.http_status,
            "url": self.url,
            "method": self.method,
            "timestamp": self.timestamp.isoformat(),
            "operation_id": self.operation_id,
            "recoverable": self.recoverable,
            "recovery_suggestion": self.recovery_suggestion,
            "retry_count": self.retry_count,
            "structured_data": (
                self.structured_data.model_dump(exclude={"raw"})
                if self.structured_data else None
            ),
            "original_error": type(self.original_error).__name__ if self.original_error else None,
        }

    def __repr__(self) -> str:
        return (
            f"EnhancedError(kind={self.kind.value!r}, status={self.http_status!r}, "
            f"operation_id={self.operation_id!r}, message={self.message!r})"
        )

"""
Error classification for the request layer.

This module maps raw failures (HTTP status codes, exception types and message
text) onto the ``ErrorKind`` taxonomy and produces ``EnhancedError`` values
carrying severity, recoverability and a recovery suggestion.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Type

import httpx

from ..models.errors import (
    EnhancedError,
    ErrorKind,
    ErrorSeverity,
    StructuredErrorData,
    is_recoverable,
    recovery_suggestion_for,
    severity_for,
)
from .error_body import parse_error_body


GENERIC_MESSAGE = "An unexpected error occurred"


class ErrorClassifier:
    """Pure mapping from raw failures to ``EnhancedError``."""

    # Exact status mappings; other 4xx fall through to VALIDATION, 5xx to SERVER
    STATUS_KINDS: Dict[int, ErrorKind] = {
        401: ErrorKind.AUTHENTICATION,
        403: ErrorKind.AUTHORIZATION,
        404: ErrorKind.NOT_FOUND,
        408: ErrorKind.TIMEOUT,
        422: ErrorKind.VALIDATION,
    }

    # Exception types, checked in order (timeouts before generic transport errors)
    EXCEPTION_KINDS: Tuple[Tuple[Tuple[Type[BaseException], ...], ErrorKind], ...] = (
        ((httpx.TimeoutException, asyncio.TimeoutError, TimeoutError), ErrorKind.TIMEOUT),
        ((httpx.RequestError, ConnectionError), ErrorKind.NETWORK),
    )

    # Error patterns for string matching
    ERROR_PATTERNS = {
        'timeout': {
            'patterns': ['timeout', 'timed out', 'etimedout'],
            'kind': ErrorKind.TIMEOUT,
        },
        'network': {
            'patterns': ['failed to fetch', 'network error', 'networkerror', 'net::err_',
                        'xhr error', 'connection', 'offline', 'network', 'econnrefused',
                        'dns'],
            'kind': ErrorKind.NETWORK,
        },
        'authorization': {
            'patterns': ['unauthorized', 'permission', 'forbidden', 'auth'],
            'kind': ErrorKind.AUTHORIZATION,
        },
    }

    # Check patterns in priority order (timeout before network)
    PATTERN_PRIORITY = ('timeout', 'network', 'authorization')

    TITLES: Dict[ErrorKind, str] = {
        ErrorKind.NETWORK: "Connection Issue",
        ErrorKind.TIMEOUT: "Request Timeout",
        ErrorKind.AUTHENTICATION: "Authentication Required",
        ErrorKind.AUTHORIZATION: "Access Denied",
        ErrorKind.VALIDATION: "Validation Error",
        ErrorKind.SERVER: "Server Error",
        ErrorKind.BUSINESS_LOGIC: "Application Error",
    }

    @classmethod
    def kind_from_status(cls, status: Optional[int]) -> ErrorKind:
        """Categorize error based on HTTP status code."""
        if not status:
            return ErrorKind.UNKNOWN
        if status in cls.STATUS_KINDS:
            return cls.STATUS_KINDS[status]
        if 400 <= status < 500:
            return ErrorKind.VALIDATION
        if status >= 500:
            return ErrorKind.SERVER
        return ErrorKind.UNKNOWN

    @classmethod
    def kind_from_message(cls, message: Optional[str]) -> ErrorKind:
        """Categorize error based on message text."""
        if not message:
            return ErrorKind.UNKNOWN
        text = message.lower()
        for key in cls.PATTERN_PRIORITY:
            pattern_info = cls.ERROR_PATTERNS[key]
            if any(pattern in text for pattern in pattern_info['patterns']):
                return pattern_info['kind']
        return ErrorKind.UNKNOWN

    @classmethod
    def kind_from_exception(cls, error: BaseException) -> Optional[ErrorKind]:
        for types, kind in cls.EXCEPTION_KINDS:
            if isinstance(error, types):
                return kind
        return None

    @staticmethod
    def severity_for(kind: ErrorKind) -> ErrorSeverity:
        return severity_for(kind)

    @staticmethod
    def is_recoverable(kind: ErrorKind) -> bool:
        return is_recoverable(kind)

    @staticmethod
    def recovery_suggestion(kind: ErrorKind) -> str:
        return recovery_suggestion_for(kind)

    @classmethod
    def title_for(cls, kind: ErrorKind) -> str:
        """Short heading for a user-facing notification."""
        return cls.TITLES.get(kind, "Error")

    @classmethod
    def classify(
        cls,
        raw: Any = None,
        *,
        http_status: Optional[int] = None,
        message: Optional[str] = None,
        body: Any = None,
        structured_data: Optional[StructuredErrorData] = None,
        kind: Optional[ErrorKind] = None,
        severity: Optional[ErrorSeverity] = None,
        recoverable: Optional[bool] = None,
        recovery_suggestion: Optional[str] = None,
        url: Optional[str] = None,
        method: Optional[str] = None,
        operation_id: Optional[str] = None,
        retry_count: int = 0,
        request_data: Any = None,
        timestamp: Optional[datetime] = None,
    ) -> EnhancedError:
        """
        Classify a raw failure.

        Args:
            raw: An exception, a status code, a message string, or None
            http_status: Status code, when known separately from ``raw``
            message: Explicit message; otherwise derived from body or ``raw``
            body: Raw server error payload, parsed into structured data
            structured_data: Already-parsed payload (wins over ``body``)
            kind, severity, recoverable, recovery_suggestion: Explicit overrides
            url, method, operation_id, retry_count, request_data, timestamp: Context

        Returns:
            An ``EnhancedError``. An ``EnhancedError`` passed as ``raw`` is
            returned unchanged.
        """
        if isinstance(raw, EnhancedError):
            return raw

        original_error = raw if isinstance(raw, BaseException) else None

        if http_status is None:
            if isinstance(raw, int) and not isinstance(raw, bool):
                http_status = raw
            elif original_error is not None:
                http_status = cls._status_from_exception(original_error)

        if structured_data is None and body is not None:
            structured_data = parse_error_body(body)

        raw_text = cls._text_of(raw)

        derived_kind = ErrorKind.UNKNOWN
        if http_status:
            derived_kind = cls.kind_from_status(http_status)
        else:
            exception_kind = cls.kind_from_exception(original_error) if original_error else None
            if exception_kind is not None:
                derived_kind = exception_kind
                if exception_kind is ErrorKind.TIMEOUT:
                    http_status = 408
            else:
                derived_kind = cls.kind_from_message(message or raw_text)

        final_kind = kind or derived_kind

        if not message:
            message = (
                (structured_data.display_message() if structured_data else None)
                or raw_text
                or (f"Request failed with status {http_status}" if http_status else None)
                or GENERIC_MESSAGE
            )

        return EnhancedError(
            message,
            final_kind,
            severity=severity,
            recoverable=recoverable,
            recovery_suggestion=recovery_suggestion,
            http_status=http_status,
            structured_data=structured_data,
            url=url,
            method=method,
            timestamp=timestamp,
            operation_id=operation_id,
            retry_count=retry_count,
            original_error=original_error,
            request_data=request_data,
        )

    @staticmethod
    def _status_from_exception(error: BaseException) -> Optional[int]:
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code
        for attr in ('status_code', 'status'):
            value = getattr(error, attr, None)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
        return None

    @staticmethod
    def _text_of(raw: Any) -> Optional[str]:
        if raw is None or isinstance(raw, (bool, int)):
            return None
        if isinstance(raw, str):
            return raw or None
        try:
            text = str(raw)
        except Exception:
            # If str() fails, try to get the message another way
            text = getattr(raw, 'message', '') or ''
        if not text and isinstance(raw, BaseException):
            text = type(raw).__name__
        return text or None

"""Data models shared across the request layer."""

from .errors import (
    EnhancedError,
    ErrorBodyVariant,
    ErrorKind,
    ErrorSeverity,
    StructuredErrorData,
)
from .policy import DEFAULT_RETRYABLE_KINDS, RetryPolicy
from .requests import CacheControl, HttpMethod, RequestDescriptor

__all__ = [
    "EnhancedError",
    "ErrorBodyVariant",
    "ErrorKind",
    "ErrorSeverity",
    "StructuredErrorData",
    "RetryPolicy",
    "DEFAULT_RETRYABLE_KINDS",
    "CacheControl",
    "HttpMethod",
    "RequestDescriptor",
]

"""
Resilient API SDK - request execution with error classification, retries,
cache invalidation and operation telemetry.

Features:
- One bounded-deadline HTTP call per attempt, with correlation ids
- Error classification into a fixed taxonomy with recovery suggestions
- Exponential backoff with injectable jitter
- Key-based cache invalidation after successful mutations
- Rolling telemetry buffer with threshold listeners
"""

__version__ = "0.1.0"

from .api.client import ResilientApiClient
from .api.session import NullSessionHandler, SessionHandler
from .cache import CacheInvalidationCoordinator, QueryCache, ResourceKeys, resource_key
from .config.settings import ClientSettings
from .models import (
    CacheControl,
    EnhancedError,
    ErrorKind,
    ErrorSeverity,
    HttpMethod,
    RequestDescriptor,
    RetryPolicy,
    StructuredErrorData,
)
from .observability import MetricThreshold, OperationMetric, OperationTelemetry, TelemetryListener
from .reliability import CancellationSignal, ErrorClassifier, RetryController, RetryState
from .transport import RequestExecutor

__all__ = [
    # Main client
    "ResilientApiClient",
    "SessionHandler",
    "NullSessionHandler",
    "ClientSettings",

    # Components
    "RequestExecutor",
    "ErrorClassifier",
    "RetryController",
    "RetryState",
    "CancellationSignal",
    "CacheInvalidationCoordinator",
    "QueryCache",
    "ResourceKeys",
    "resource_key",
    "OperationTelemetry",

    # Models
    "HttpMethod",
    "CacheControl",
    "RequestDescriptor",
    "RetryPolicy",
    "EnhancedError",
    "ErrorKind",
    "ErrorSeverity",
    "StructuredErrorData",
    "OperationMetric",
    "MetricThreshold",
    "TelemetryListener",
]

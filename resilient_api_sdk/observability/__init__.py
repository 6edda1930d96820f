"""Observability layer for telemetry and structured logging.

This layer handles:
- Operation correlation ids
- Rolling metric buffer with windowed averages
- Threshold listeners (warning / error / every metric)
- Structured request logging
"""

from .correlation import new_operation_id
from .logging import RequestLogger
from .models import MetricThreshold, OperationMetric, TelemetryListener, default_thresholds
from .telemetry import OperationTelemetry

__all__ = [
    "new_operation_id",
    "RequestLogger",
    "MetricThreshold",
    "OperationMetric",
    "TelemetryListener",
    "default_thresholds",
    "OperationTelemetry",
]

"""
Telemetry data models.

Metrics are timestamped in epoch milliseconds; thresholds are keyed by metric
name and use the metric's own unit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..config.constants import PERFORMANCE_THRESHOLDS


@dataclass
class OperationMetric:
    """One recorded measurement."""
    name: str
    value: float
    timestamp: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "timestamp": self.timestamp,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class MetricThreshold:
    warning: float
    error: float
    unit: str = "ms"


@dataclass
class TelemetryListener:
    """Callbacks invoked for recorded metrics. Any subset may be set."""
    on_warning: Optional[Callable[[OperationMetric], None]] = None
    on_error: Optional[Callable[[OperationMetric], None]] = None
    on_metric: Optional[Callable[[OperationMetric], None]] = None


def default_thresholds() -> Dict[str, MetricThreshold]:
    return {
        name: MetricThreshold(**values)
        for name, values in PERFORMANCE_THRESHOLDS.items()
    }

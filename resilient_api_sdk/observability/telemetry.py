"""
Operation telemetry registry.

Keeps a bounded rolling buffer of measurements, computes windowed averages
per metric name and notifies listeners when a threshold is crossed. One
registry is created per client (or application) and disposed at shutdown;
components receive it explicitly.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, Callable, Deque, Dict, List, Optional

from ..config.constants import TELEMETRY_AVERAGE_WINDOW_MS, TELEMETRY_BUFFER_CAPACITY
from .models import MetricThreshold, OperationMetric, TelemetryListener, default_thresholds

logger = logging.getLogger(__name__)


class OperationTelemetry:
    """
    Rolling metric buffer with threshold listeners.

    Features:
    - Fixed-size buffer (oldest entries evicted first)
    - Windowed averages per metric name
    - Warning/error thresholds per metric name
    - Listener registration with unsubscribe handles
    """

    def __init__(
        self,
        capacity: int = TELEMETRY_BUFFER_CAPACITY,
        thresholds: Optional[Dict[str, MetricThreshold]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            capacity: Maximum number of metrics kept
            thresholds: Threshold table; defaults to the built-in table
            clock: Seconds-since-epoch source (injectable for tests)
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.thresholds: Dict[str, MetricThreshold] = (
            dict(thresholds) if thresholds is not None else default_thresholds()
        )
        self._clock = clock
        self._metrics: Deque[OperationMetric] = deque(maxlen=capacity)
        self._listeners: List[TelemetryListener] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def now_ms(self) -> float:
        return self._clock() * 1000.0

    def add_listener(self, listener: TelemetryListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            self.remove_listener(listener)

        return unsubscribe

    def remove_listener(self, listener: TelemetryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_threshold(self, name: str, threshold: MetricThreshold) -> None:
        self.thresholds[name] = threshold

    def record(
        self,
        name: str,
        duration_ms: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[OperationMetric]:
        """
        Record a measurement and notify listeners.

        Returns:
            The stored metric, or None once the registry is disposed
        """
        if self._disposed:
            logger.debug(f"Telemetry disposed; dropping metric {name}")
            return None

        metric = OperationMetric(
            name=name,
            value=float(duration_ms),
            timestamp=self.now_ms(),
            metadata=dict(metadata or {}),
        )
        self._metrics.append(metric)

        threshold = self.thresholds.get(name)
        if threshold is not None:
            if metric.value >= threshold.error:
                logger.error(
                    f"Metric {name} crossed error threshold: {metric.value:.1f}{threshold.unit}"
                )
                self._notify("on_error", metric)
            elif metric.value >= threshold.warning:
                logger.warning(
                    f"Metric {name} crossed warning threshold: {metric.value:.1f}{threshold.unit}"
                )
                self._notify("on_warning", metric)

        self._notify("on_metric", metric)
        return metric

    def get_metrics(self, name: Optional[str] = None) -> List[OperationMetric]:
        if name is None:
            return list(self._metrics)
        return [m for m in self._metrics if m.name == name]

    def get_average(self, name: str, window_ms: float = TELEMETRY_AVERAGE_WINDOW_MS) -> float:
        """Mean value of ``name`` over the last ``window_ms``; 0.0 when empty."""
        cutoff = self.now_ms() - window_ms
        values = [m.value for m in self._metrics if m.name == name and m.timestamp > cutoff]
        if not values:
            return 0.0
        return sum(values) / len(values)

    def clear(self, name: Optional[str] = None) -> None:
        if name is None:
            self._metrics.clear()
            return
        kept = [m for m in self._metrics if m.name != name]
        self._metrics = deque(kept, maxlen=self.capacity)

    def summary(self, window_ms: float = TELEMETRY_AVERAGE_WINDOW_MS) -> Dict[str, Any]:
        """Count and windowed average per metric name."""
        names = sorted({m.name for m in self._metrics})
        return {
            "total_metrics": len(self._metrics),
            "capacity": self.capacity,
            "metrics": {
                name: {
                    "count": len(self.get_metrics(name)),
                    "average": self.get_average(name, window_ms),
                }
                for name in names
            },
        }

    @asynccontextmanager
    async def track(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Time the enclosed block and record it under ``name``.

        When the block raises, the error text is added to the metadata and
        the exception propagates.
        """
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            self.record(name, duration_ms, {**(metadata or {}), "error": str(e)})
            raise
        duration_ms = (time.perf_counter() - start) * 1000
        self.record(name, duration_ms, metadata)

    def dispose(self) -> None:
        """Drop all metrics and listeners; later records are ignored."""
        self._disposed = True
        self._listeners.clear()
        self._metrics.clear()

    def _notify(self, event: str, metric: OperationMetric) -> None:
        for listener in list(self._listeners):
            callback = getattr(listener, event)
            if callback is None:
                continue
            try:
                callback(metric)
            except Exception as e:
                logger.error(f"Error in telemetry listener {event}: {e}")

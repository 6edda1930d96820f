"""FastAPI HTTP endpoints for operation telemetry.

This module provides read-only REST endpoints over an ``OperationTelemetry``
registry. It requires FastAPI to be installed (via the 'http' extra).
"""

from typing import Optional

try:
    from fastapi import APIRouter, HTTPException
except ImportError:
    raise ImportError(
        "FastAPI is required for HTTP endpoints. "
        "Please install with: pip install resilient-api-sdk[http]"
    )

from ..config.constants import TELEMETRY_AVERAGE_WINDOW_MS
from ..observability.telemetry import OperationTelemetry


def create_telemetry_router(telemetry: OperationTelemetry) -> APIRouter:
    """Build a router serving snapshots of ``telemetry``."""
    router = APIRouter(prefix="/telemetry")

    def _ensure_live():
        if telemetry.disposed:
            raise HTTPException(status_code=503, detail="Telemetry has been disposed")

    @router.get("/metrics")
    async def get_metrics(name: Optional[str] = None):
        """Recorded metrics, optionally filtered by name."""
        _ensure_live()
        metrics = telemetry.get_metrics(name)
        return {
            "name": name,
            "count": len(metrics),
            "metrics": [metric.to_dict() for metric in metrics],
        }

    @router.get("/average/{name}")
    async def get_average(name: str, window_ms: float = TELEMETRY_AVERAGE_WINDOW_MS):
        """Windowed average of one metric."""
        _ensure_live()
        if window_ms <= 0:
            raise HTTPException(status_code=400, detail="window_ms must be positive")
        return {
            "name": name,
            "window_ms": window_ms,
            "average": telemetry.get_average(name, window_ms),
        }

    @router.get("/summary")
    async def get_summary(window_ms: float = TELEMETRY_AVERAGE_WINDOW_MS):
        """Count and windowed average per metric name."""
        _ensure_live()
        return telemetry.summary(window_ms)

    return router

"""Configuration for the request layer."""

from .constants import (
    DEFAULT_TIMEOUT_MS,
    SLOW_REQUEST_THRESHOLD_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    PERFORMANCE_THRESHOLDS,
)
from .settings import ClientSettings

__all__ = [
    "ClientSettings",
    "DEFAULT_TIMEOUT_MS",
    "SLOW_REQUEST_THRESHOLD_MS",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_INITIAL_DELAY_MS",
    "DEFAULT_MAX_DELAY_MS",
    "PERFORMANCE_THRESHOLDS",
]

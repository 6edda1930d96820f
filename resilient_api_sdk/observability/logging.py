"""
Structured logging utility for the request layer.

This module provides a consistent logging interface for the executor and
client, so every line carries the operation id, method and URL.
"""

import logging
import time
from contextlib import contextmanager
from typing import Optional


class RequestLogger:
    """Structured logger for one request-layer component."""

    def __init__(self, component: str):
        """
        Args:
            component: Component name (e.g., "executor", "client")
        """
        self.component = component
        self.logger = logging.getLogger(f"resilient_api_sdk.{component}")

    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with structured fields."""
        fields = []
        for key, value in kwargs.items():
            if value is not None:
                fields.append(f"{key}={value}")
        if not fields:
            return message
        return f"[{' '.join(fields)}] {message}"

    def debug(self, message: str, operation_id: Optional[str] = None, **kwargs):
        self.logger.debug(self._format_message(message, operation_id=operation_id, **kwargs))

    def info(self, message: str, operation_id: Optional[str] = None, **kwargs):
        self.logger.info(self._format_message(message, operation_id=operation_id, **kwargs))

    def warning(self, message: str, operation_id: Optional[str] = None, **kwargs):
        self.logger.warning(self._format_message(message, operation_id=operation_id, **kwargs))

    def error(self, message: str, operation_id: Optional[str] = None,
              error: Optional[Exception] = None, **kwargs):
        """Log error message with structured fields."""
        if error is not None:
            kwargs.setdefault('kind', getattr(getattr(error, 'kind', None), 'value', None))
            kwargs['error_type'] = type(error).__name__
            kwargs['error_msg'] = str(error)
        self.logger.error(self._format_message(message, operation_id=operation_id, **kwargs))

    @contextmanager
    def track_operation(self, name: str, operation_id: Optional[str] = None, **fields):
        """
        Log start, completion and failure of a block with its duration.

        Yields:
            Dict with ``operation_id`` and ``start_time``
        """
        start_time = time.time()
        self.debug(f"Starting {name}", operation_id=operation_id, **fields)
        metadata = {'operation_id': operation_id, 'start_time': start_time}
        try:
            yield metadata
        except Exception as e:
            duration = time.time() - start_time
            self.error(
                f"Failed {name}",
                operation_id=operation_id,
                error=e,
                duration_ms=int(duration * 1000),
                **fields
            )
            raise
        duration = time.time() - start_time
        self.info(
            f"Completed {name}",
            operation_id=operation_id,
            duration_ms=int(duration * 1000),
            **fields
        )

"""Reliability layer for error classification, retries and cancellation.

This layer handles:
- Server error body parsing
- Error classification into the ErrorKind taxonomy
- Retry logic with exponential backoff and jitter
- Cooperative cancellation
"""

from .cancellation import CancellationSignal
from .error_body import parse_error_body
from .error_classifier import ErrorClassifier
from .retry import NEVER_RETRY_KINDS, RetryController, RetryState

__all__ = [
    "CancellationSignal",
    "parse_error_body",
    "ErrorClassifier",
    "RetryController",
    "RetryState",
    "NEVER_RETRY_KINDS",
]

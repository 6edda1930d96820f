from __future__ import annotations

from typing import Callable, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..config.constants import (
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    JITTER_RATIO,
)
from .errors import EnhancedError, ErrorKind


DEFAULT_RETRYABLE_KINDS: FrozenSet[ErrorKind] = frozenset({
    ErrorKind.NETWORK,
    ErrorKind.TIMEOUT,
    ErrorKind.SERVER,
})


class RetryPolicy(BaseModel):
    """
    Governs whether, how often and with what delay a failed operation is retried.

    ``retry_condition`` replaces the kind check (the attempt bound still applies).
    ``on_retry`` is called with the upcoming attempt number and the error before
    each wait.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    retryable_kinds: FrozenSet[ErrorKind] = Field(default=DEFAULT_RETRYABLE_KINDS)
    initial_delay_ms: float = Field(default=DEFAULT_INITIAL_DELAY_MS, ge=0)
    max_delay_ms: float = Field(default=DEFAULT_MAX_DELAY_MS, ge=0)
    jitter_ratio: float = Field(default=JITTER_RATIO, ge=0.0, le=1.0)
    retry_condition: Optional[Callable[[EnhancedError, int], bool]] = None
    on_retry: Optional[Callable[[int, EnhancedError], None]] = None

    @model_validator(mode="after")
    def _check_delays(self):
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")
        return self

    def allows_kind(self, error: EnhancedError, attempt: int) -> bool:
        """Kind (or custom predicate) check for one failed attempt."""
        if self.retry_condition is not None:
            return bool(self.retry_condition(error, attempt))
        return error.kind in self.retryable_kinds

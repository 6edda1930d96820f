"""
Retry controller with exponential backoff and jitter.

One controller drives one logical operation through the states
``IDLE -> ATTEMPTING -> {SUCCEEDED | RETRYING -> ATTEMPTING | EXHAUSTED}``.
Attempts are strictly sequential and every failure is classified before the
retry decision is made.
"""

import logging
import random
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from ..models.errors import EnhancedError, ErrorKind
from ..models.policy import RetryPolicy
from ..observability.correlation import new_operation_id
from .cancellation import CancellationSignal
from .error_classifier import ErrorClassifier

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Never retried automatically: the session has to be re-established first
NEVER_RETRY_KINDS = frozenset({ErrorKind.AUTHENTICATION})


class RetryState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class RetryController(Generic[T]):
    """
    Drives one logical operation, retrying classified failures.

    The operation is an async callable taking the zero-based attempt number.
    Failures are classified with ``ErrorClassifier``; each resulting
    ``EnhancedError`` carries the controller's operation id and the 1-based
    number of the attempt that produced it.

    Attributes:
        state: Current ``RetryState``
        retry_count: Retries performed so far (reset when ``execute`` starts)
        last_error: Most recent classified failure
        result: Value of the last successful attempt
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        *,
        operation_id: Optional[str] = None,
        rng: Optional[random.Random] = None,
        signal: Optional[CancellationSignal] = None,
        on_success: Optional[Callable[[T], None]] = None,
    ):
        self.policy = policy or RetryPolicy()
        self.operation_id = operation_id or new_operation_id()
        self.rng = rng or random.Random()
        self.signal = signal or CancellationSignal()
        self.on_success = on_success

        self.state = RetryState.IDLE
        self.retry_count = 0
        self.last_error: Optional[EnhancedError] = None
        self.result: Optional[T] = None
        self._func: Optional[Callable[[int], Awaitable[T]]] = None

    @property
    def has_exhausted_retries(self) -> bool:
        return self.last_error is not None and self.retry_count >= self.policy.max_retries

    def compute_delay(self, attempt: int) -> float:
        """
        Backoff delay in milliseconds before retrying after ``attempt`` (0-based).

        ``min(initial * 2**attempt + jitter, max_delay)`` where jitter is drawn
        uniformly from ``[0, jitter_ratio * base)``.
        """
        base = self.policy.initial_delay_ms * (2 ** attempt)
        jitter = self.rng.random() * self.policy.jitter_ratio * base
        return min(base + jitter, self.policy.max_delay_ms)

    def reset(self) -> None:
        """Return to IDLE and clear any cancellation."""
        self._reset_progress()
        if self.signal.cancelled:
            self.signal = CancellationSignal()

    def _reset_progress(self) -> None:
        self.state = RetryState.IDLE
        self.retry_count = 0
        self.last_error = None
        self.result = None

    def cancel(self, reason: str = "cancelled") -> None:
        """Abort a pending wait (or in-flight attempt observing the signal)."""
        logger.debug(
            f"Cancelling operation {self.operation_id}",
            extra={"operation_id": self.operation_id, "state": self.state.value, "reason": reason}
        )
        self.signal.cancel(reason)

    async def execute(self, func: Callable[[int], Awaitable[T]]) -> T:
        """
        Run ``func`` until it succeeds or retries are exhausted.

        A cancel() issued before this call is honoured and no attempt is made.

        Returns:
            Result of the first successful attempt

        Raises:
            EnhancedError: The last classified failure
        """
        self._reset_progress()
        self._func = func
        return await self._run()

    async def retry(self) -> Optional[T]:
        """
        Resume after exhaustion or cancellation (a user "Try again" action).

        A no-op returning None when nothing has failed yet or the original
        ``max_retries`` bound has already been reached.
        """
        if self._func is None or self.state not in (RetryState.EXHAUSTED, RetryState.CANCELLED):
            logger.debug(
                f"Manual retry ignored for operation {self.operation_id}",
                extra={"operation_id": self.operation_id, "state": self.state.value}
            )
            return None
        if self.retry_count >= self.policy.max_retries:
            logger.info(
                f"Manual retry ignored for operation {self.operation_id}: retries exhausted",
                extra={"operation_id": self.operation_id, "retry_count": self.retry_count}
            )
            return None

        if self.signal.cancelled:
            self.signal = CancellationSignal()
        self.retry_count += 1
        return await self._run()

    async def _run(self) -> T:
        func = self._func
        while True:
            if self.signal.cancelled:
                self._raise_cancelled()

            attempt = self.retry_count
            self.state = RetryState.ATTEMPTING
            try:
                result = await func(attempt)
            except Exception as exc:  # noqa: BLE001
                error = self._classify(exc, attempt)
            else:
                return self._succeed(result)

            self.last_error = error

            if self.signal.cancelled:
                self._raise_cancelled()

            if not self._should_retry(error, attempt):
                self.state = RetryState.EXHAUSTED
                logger.error(
                    f"Operation {self.operation_id} failed after {attempt + 1} attempt(s)",
                    extra={
                        "operation_id": self.operation_id,
                        "attempts": attempt + 1,
                        "error_kind": error.kind.value,
                        "http_status": error.http_status,
                    }
                )
                raise error

            delay = self.compute_delay(attempt)
            self._notify_retry(attempt + 1, error)
            self.state = RetryState.RETRYING
            logger.warning(
                f"Retrying operation {self.operation_id} after {error.kind.value} error",
                extra={
                    "operation_id": self.operation_id,
                    "attempt": attempt + 1,
                    "error_kind": error.kind.value,
                    "http_status": error.http_status,
                    "delay_ms": round(delay, 1),
                }
            )

            if not await self.signal.sleep(delay):
                self._raise_cancelled()
            self.retry_count += 1

    def _classify(self, exc: Exception, attempt: int) -> EnhancedError:
        error = ErrorClassifier.classify(exc, operation_id=self.operation_id)
        if error.operation_id is None:
            error.operation_id = self.operation_id
        error.retry_count = attempt + 1
        return error

    def _should_retry(self, error: EnhancedError, attempt: int) -> bool:
        if self.retry_count >= self.policy.max_retries:
            return False
        if error.kind in NEVER_RETRY_KINDS:
            return False
        return self.policy.allows_kind(error, attempt)

    def _succeed(self, result: T) -> T:
        self.state = RetryState.SUCCEEDED
        self.result = result
        if self.retry_count > 0:
            logger.info(
                f"Operation {self.operation_id} succeeded after {self.retry_count} retries",
                extra={"operation_id": self.operation_id, "retry_count": self.retry_count}
            )
        if self.on_success:
            self.on_success(result)
        return result

    def _notify_retry(self, attempt: int, error: EnhancedError) -> None:
        if not self.policy.on_retry:
            return
        try:
            self.policy.on_retry(attempt, error)
        except Exception as e:
            logger.error(f"Error in on_retry callback: {e}")

    def _raise_cancelled(self):
        self.state = RetryState.CANCELLED
        error = self.last_error or EnhancedError(
            "Operation was cancelled before completing",
            ErrorKind.UNKNOWN,
            operation_id=self.operation_id,
            retry_count=self.retry_count,
        )
        self.last_error = error
        logger.info(
            f"Operation {self.operation_id} cancelled",
            extra={"operation_id": self.operation_id, "reason": self.signal.reason}
        )
        raise error

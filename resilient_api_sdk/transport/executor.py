"""
Request executor.

Issues exactly one HTTP call per invocation with a bounded deadline, parses
the response by content type and turns every failure into an
``EnhancedError``. Each invocation emits one telemetry record.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from ..config.constants import REQUEST_METRIC_NAME, SLOW_REQUEST_THRESHOLD_MS
from ..models.errors import EnhancedError, ErrorKind
from ..models.requests import CacheControl, RequestDescriptor
from ..observability.correlation import new_operation_id
from ..observability.logging import RequestLogger
from ..observability.telemetry import OperationTelemetry
from ..reliability.cancellation import CancellationSignal
from ..reliability.error_body import parse_error_body
from ..reliability.error_classifier import ErrorClassifier
from .parsing import parse_error_payload, parse_response

REQUEST_ID_HEADER = "X-Request-ID"


class RequestExecutor:
    """
    Executes one ``RequestDescriptor`` against an ``httpx.AsyncClient``.

    The executor is responsible for:
    - Setting ``Content-Type`` and ``X-Request-ID`` headers
    - Enforcing the descriptor's deadline (cancelling the in-flight call)
    - Observing an optional cancellation signal while the call is in flight
    - Negotiating response parsing
    - Classifying failures and recording telemetry
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        base_url: str = "",
        telemetry: Optional[OperationTelemetry] = None,
        slow_threshold_ms: float = SLOW_REQUEST_THRESHOLD_MS,
        default_headers: Optional[Dict[str, str]] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self.base_url = base_url
        self.telemetry = telemetry
        self.slow_threshold_ms = slow_threshold_ms
        self.default_headers = dict(default_headers or {})
        self._log = RequestLogger("executor")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def build_headers(self, descriptor: RequestDescriptor, operation_id: str) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        headers.update(self.default_headers)
        headers.update(descriptor.headers)
        if descriptor.cache_control is not CacheControl.DEFAULT:
            headers["Cache-Control"] = descriptor.cache_control.value
        headers[REQUEST_ID_HEADER] = operation_id
        return headers

    async def execute(
        self,
        descriptor: RequestDescriptor,
        *,
        operation_id: Optional[str] = None,
        attempt: int = 0,
        signal: Optional[CancellationSignal] = None,
    ) -> Any:
        """
        Issue the request once.

        Args:
            descriptor: What to send
            operation_id: Correlation id; generated when omitted
            attempt: Zero-based attempt number within the logical operation
            signal: Optional cancellation signal observed during the call

        Returns:
            Parsed response body (None for empty / 204 responses)

        Raises:
            EnhancedError: For every failure
        """
        operation_id = operation_id or new_operation_id()
        url = descriptor.resolve_url(self.base_url)
        method = descriptor.method.value
        context = dict(url=url, method=method, operation_id=operation_id,
                       retry_count=attempt + 1, request_data=descriptor.body)

        self._log.debug("Sending request", operation_id=operation_id, method=method,
                        url=url, attempt=attempt)
        start = time.perf_counter()
        status: Optional[int] = None
        error: Optional[EnhancedError] = None
        outcome = "cancelled"
        try:
            response = await self._send(descriptor, url, operation_id, signal, context, start)
            status = response.status_code
            if not response.is_success:
                raise self._error_from_response(response, context)
            try:
                result = parse_response(response)
            except ValueError as e:
                raise ErrorClassifier.classify(
                    e,
                    http_status=status,
                    message=f"Malformed response body: {e}",
                    kind=ErrorKind.UNKNOWN,
                    **context
                )
            outcome = "success"
            return result
        except EnhancedError as e:
            error = e
            outcome = "error"
            raise
        finally:
            self._finish(descriptor, url, operation_id, attempt, start, status, error, outcome)

    async def _send(self, descriptor, url, operation_id, signal, context, start) -> httpx.Response:
        timeout_s = descriptor.timeout_ms / 1000.0
        kwargs: Dict[str, Any] = {
            "headers": self.build_headers(descriptor, operation_id),
            "timeout": timeout_s,
            "follow_redirects": True,
        }
        if descriptor.body is not None:
            kwargs["json"] = descriptor.body

        task = asyncio.ensure_future(
            self._client.request(descriptor.method.value, url, **kwargs)
        )
        cancel_waiter = asyncio.ensure_future(signal.wait()) if signal is not None else None
        waiters = {task} if cancel_waiter is None else {task, cancel_waiter}

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout_s,
                                         return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            await self._abandon(task)
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if task not in done:
            await self._abandon(task)
            if cancel_waiter is not None and cancel_waiter in done:
                raise ErrorClassifier.classify(
                    None,
                    message="Request was cancelled",
                    kind=ErrorKind.UNKNOWN,
                    recoverable=True,
                    recovery_suggestion="The request was cancelled. Please try again.",
                    **context
                )
            raise self._timeout_error(descriptor, None, context)

        try:
            return task.result()
        except httpx.TimeoutException as e:
            raise self._timeout_error(descriptor, e, context)
        except (httpx.RequestError, OSError) as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            if elapsed_ms >= descriptor.timeout_ms:
                raise self._timeout_error(descriptor, e, context)
            raise ErrorClassifier.classify(e, kind=ErrorKind.NETWORK, **context)
        except Exception as e:  # noqa: BLE001
            raise ErrorClassifier.classify(e, **context)

    @staticmethod
    async def _abandon(task: asyncio.Future) -> None:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    @staticmethod
    def _timeout_error(descriptor, cause, context) -> EnhancedError:
        return ErrorClassifier.classify(
            cause,
            http_status=408,
            kind=ErrorKind.TIMEOUT,
            message=f"Request timed out after {descriptor.timeout_ms}ms",
            **context
        )

    @staticmethod
    def _error_from_response(response: httpx.Response, context) -> EnhancedError:
        payload = parse_error_payload(response)
        structured = parse_error_body(payload) if payload is not None else None
        message = (
            (structured.message or structured.error if structured else None)
            or response.reason_phrase
            or f"Request failed with status {response.status_code}"
        )
        return ErrorClassifier.classify(
            None,
            http_status=response.status_code,
            message=message,
            structured_data=structured,
            **context
        )

    def _finish(self, descriptor, url, operation_id, attempt, start, status, error, outcome) -> None:
        duration_ms = (time.perf_counter() - start) * 1000
        metadata = {
            "operation_id": operation_id,
            "method": descriptor.method.value,
            "url": url,
            "status": status if error is None else error.http_status,
            "attempt": attempt,
            "outcome": outcome,
        }
        if error is not None:
            metadata["kind"] = error.kind.value
        if self.telemetry is not None:
            self.telemetry.record(REQUEST_METRIC_NAME, duration_ms, metadata)

        if duration_ms > self.slow_threshold_ms:
            self._log.warning(
                "Slow request",
                operation_id=operation_id,
                method=descriptor.method.value,
                url=url,
                duration_ms=int(duration_ms),
                threshold_ms=int(self.slow_threshold_ms),
            )
        if outcome == "cancelled":
            # The caller went away; nothing was classified
            self._log.warning("Request abandoned", operation_id=operation_id,
                              method=descriptor.method.value, url=url,
                              duration_ms=int(duration_ms))
        elif error is None:
            self._log.info("Request completed", operation_id=operation_id,
                           method=descriptor.method.value, url=url, status=status,
                           duration_ms=int(duration_ms))
        else:
            self._log.error("Request failed", operation_id=operation_id, error=error,
                            method=descriptor.method.value, url=url,
                            status=error.http_status, duration_ms=int(duration_ms))

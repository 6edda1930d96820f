"""Main client interface for the resilient request layer."""

import asyncio
import logging
import random
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..cache.invalidation import CacheInvalidationCoordinator
from ..cache.keys import CacheKey
from ..cache.query_cache import QueryCache
from ..config.constants import DEFAULT_STALE_TIME_MS
from ..config.settings import ClientSettings
from ..models.errors import EnhancedError, ErrorKind
from ..models.policy import RetryPolicy
from ..models.requests import CacheControl, HttpMethod, RequestDescriptor
from ..observability.telemetry import OperationTelemetry
from ..reliability.retry import RetryController
from ..transport.executor import RequestExecutor
from .session import NullSessionHandler, SessionHandler

logger = logging.getLogger(__name__)

ON_UNAUTHORIZED_THROW = "throw"
ON_UNAUTHORIZED_RETURN_NONE = "return_none"


class ResilientApiClient:
    """High-level client: retrying requests, cache invalidation and reads."""

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        telemetry: Optional[OperationTelemetry] = None,
        coordinator: Optional[CacheInvalidationCoordinator] = None,
        session: Optional[SessionHandler] = None,
        rng: Optional[random.Random] = None,
        stale_time_ms: float = DEFAULT_STALE_TIME_MS,
    ):
        """
        Initialize the client.

        Args:
            settings: Client settings; read from the environment when omitted
            client: Optional httpx client (the client owns one it creates)
            telemetry: Optional telemetry registry (the client owns one it creates)
            coordinator: Optional invalidation coordinator shared with other readers
            session: Identity collaborator notified on AUTHENTICATION failures
            rng: Random source for backoff jitter
            stale_time_ms: Freshness window of the read cache
        """
        self.settings = settings or ClientSettings.from_env()
        self._owns_telemetry = telemetry is None
        self.telemetry = telemetry or OperationTelemetry(capacity=self.settings.telemetry_capacity)
        self.coordinator = coordinator or CacheInvalidationCoordinator()
        self.session = session or NullSessionHandler()
        self.rng = rng or random.Random()
        self.default_policy = self.settings.default_policy()

        self.executor = RequestExecutor(
            client,
            base_url=self.settings.base_url,
            telemetry=self.telemetry,
            slow_threshold_ms=self.settings.slow_request_threshold_ms,
        )
        self.cache = QueryCache(self.coordinator, stale_time_ms=stale_time_ms)

    async def __aenter__(self) -> "ResilientApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.executor.aclose()
        self.cache.clear()
        if self._owns_telemetry:
            self.telemetry.dispose()

    def controller_for(self, descriptor: RequestDescriptor) -> RetryController:
        """New retry controller for one logical call of ``descriptor``."""
        return RetryController(descriptor.retry_policy or self.default_policy, rng=self.rng)

    async def request(
        self,
        descriptor: RequestDescriptor,
        *,
        controller: Optional[RetryController] = None,
    ) -> Any:
        """
        Execute ``descriptor`` with retries.

        Args:
            descriptor: What to send
            controller: Optional controller, for callers that cancel or
                manually retry the operation

        Returns:
            Parsed response body

        Raises:
            EnhancedError: The final classified failure
        """
        return await self._request(descriptor, controller, notify_session=True)

    async def mutate(
        self,
        descriptor: RequestDescriptor,
        invalidate: Iterable[CacheKey] = (),
        *,
        controller: Optional[RetryController] = None,
    ) -> Any:
        """Execute a write and invalidate ``invalidate`` once it succeeds."""
        result = await self.request(descriptor, controller=controller)
        keys = list(invalidate)
        if keys:
            self.coordinator.invalidate(keys)
        return result

    async def mutate_many(
        self,
        descriptors: Iterable[RequestDescriptor],
        invalidate: Iterable[CacheKey] = (),
    ) -> List[Any]:
        """
        Run several writes concurrently, then invalidate ``invalidate`` once.

        Each write is its own operation with its own retry controller and
        correlation id. Invalidation happens after every write has settled,
        whether or not they all succeeded.

        Returns:
            Parsed response bodies, in the order of ``descriptors``

        Raises:
            EnhancedError: The first failure in ``descriptors`` order
        """
        descriptors = list(descriptors)
        outcomes = await asyncio.gather(
            *(self.request(descriptor) for descriptor in descriptors),
            return_exceptions=True,
        )

        keys = list(invalidate)
        if keys:
            self.coordinator.invalidate(keys)

        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if failures:
            logger.warning(
                f"{len(failures)} of {len(descriptors)} batched writes failed",
                extra={"failed": len(failures), "total": len(descriptors)}
            )
            raise failures[0]
        return list(outcomes)

    async def query(
        self,
        key: CacheKey,
        descriptor: RequestDescriptor,
        *,
        on_unauthorized: str = ON_UNAUTHORIZED_THROW,
    ) -> Any:
        """
        Read ``descriptor`` through the query cache under ``key``.

        With ``on_unauthorized="return_none"`` an AUTHENTICATION failure
        yields None instead of raising (e.g. "who is signed in" reads).
        """
        if on_unauthorized not in (ON_UNAUTHORIZED_THROW, ON_UNAUTHORIZED_RETURN_NONE):
            raise ValueError(f"Unknown on_unauthorized behaviour: {on_unauthorized}")
        quiet = on_unauthorized == ON_UNAUTHORIZED_RETURN_NONE

        async def fetch():
            return await self._request(descriptor, None, notify_session=not quiet)

        try:
            return await self.cache.get(key, fetch, descriptor.cache_control)
        except EnhancedError as e:
            if quiet and e.kind is ErrorKind.AUTHENTICATION:
                return None
            raise

    async def get(self, url: str, **options) -> Any:
        return await self.request(self.descriptor(HttpMethod.GET, url, **options))

    async def post(self, url: str, body: Any = None, invalidate: Iterable[CacheKey] = (), **options) -> Any:
        return await self.mutate(self.descriptor(HttpMethod.POST, url, body, **options), invalidate)

    async def put(self, url: str, body: Any = None, invalidate: Iterable[CacheKey] = (), **options) -> Any:
        return await self.mutate(self.descriptor(HttpMethod.PUT, url, body, **options), invalidate)

    async def patch(self, url: str, body: Any = None, invalidate: Iterable[CacheKey] = (), **options) -> Any:
        return await self.mutate(self.descriptor(HttpMethod.PATCH, url, body, **options), invalidate)

    async def delete(self, url: str, invalidate: Iterable[CacheKey] = (), **options) -> Any:
        return await self.mutate(self.descriptor(HttpMethod.DELETE, url, **options), invalidate)

    def descriptor(
        self,
        method: HttpMethod,
        url: str,
        body: Any = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        timeout_ms: Optional[int] = None,
        retry_policy: Optional[RetryPolicy] = None,
        cache_control: CacheControl = CacheControl.DEFAULT,
    ) -> RequestDescriptor:
        """Build a descriptor using the client's default timeout."""
        return RequestDescriptor(
            method=method,
            url=url,
            body=body,
            headers=headers or {},
            timeout_ms=timeout_ms or self.settings.timeout_ms,
            retry_policy=retry_policy,
            cache_control=cache_control,
        )

    async def _request(
        self,
        descriptor: RequestDescriptor,
        controller: Optional[RetryController],
        notify_session: bool,
    ) -> Any:
        controller = controller or self.controller_for(descriptor)

        async def attempt(n: int) -> Any:
            return await self.executor.execute(
                descriptor,
                operation_id=controller.operation_id,
                attempt=n,
                signal=controller.signal,
            )

        try:
            return await controller.execute(attempt)
        except EnhancedError as e:
            if notify_session and e.kind is ErrorKind.AUTHENTICATION:
                self._session_invalid(descriptor.url)
            raise

    def _session_invalid(self, return_to: str) -> None:
        try:
            self.session.on_session_invalid(return_to=return_to)
        except Exception as e:
            logger.error(f"Error in session handler: {e}")

"""Stale-aware read cache driven by the invalidation coordinator."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config.constants import DEFAULT_STALE_TIME_MS
from ..models.requests import CacheControl
from .invalidation import CacheInvalidationCoordinator
from .keys import CacheKey, NormalizedKey, normalize_key

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    fetched_at_ms: float
    stale: bool = False


class QueryCache:
    """
    Caches read results per key.

    An entry is served while fresh. It becomes stale after ``stale_time_ms``
    or when the coordinator invalidates its key; the next ``get`` then
    refetches. Concurrent reads of the same key share one fetch.
    """

    def __init__(
        self,
        coordinator: CacheInvalidationCoordinator,
        stale_time_ms: float = DEFAULT_STALE_TIME_MS,
        clock: Callable[[], float] = time.time,
    ):
        self.coordinator = coordinator
        self.stale_time_ms = stale_time_ms
        self._clock = clock
        self._entries: Dict[NormalizedKey, CacheEntry] = {}
        self._inflight: Dict[NormalizedKey, asyncio.Future] = {}
        self._generations: Dict[NormalizedKey, int] = {}
        self._unsubscribers: Dict[NormalizedKey, Callable[[], None]] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def peek(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(normalize_key(key))

    def is_stale(self, key: CacheKey) -> bool:
        entry = self.peek(key)
        if entry is None:
            return True
        return entry.stale or (self._now_ms() - entry.fetched_at_ms) >= self.stale_time_ms

    def mark_stale(self, key: NormalizedKey) -> None:
        self._generations[key] = self._generations.get(key, 0) + 1
        entry = self._entries.get(key)
        if entry is not None:
            entry.stale = True

    def set(self, key: CacheKey, value: Any) -> None:
        normalized = normalize_key(key)
        self._entries[normalized] = CacheEntry(value=value, fetched_at_ms=self._now_ms())
        self._subscribe(normalized)

    def _subscribe(self, key: NormalizedKey) -> None:
        if key not in self._unsubscribers:
            self._unsubscribers[key] = self.coordinator.subscribe(key, self.mark_stale)

    async def get(
        self,
        key: CacheKey,
        fetcher: Callable[[], Awaitable[Any]],
        cache_control: CacheControl = CacheControl.DEFAULT,
    ) -> Any:
        """
        Return the cached value for ``key`` or fetch it.

        NO_CACHE always fetches and stores; NO_STORE always fetches and
        stores nothing.
        """
        normalized = normalize_key(key)
        if cache_control is CacheControl.NO_STORE:
            return await fetcher()

        if cache_control is CacheControl.DEFAULT and not self.is_stale(normalized):
            return self._entries[normalized].value

        pending = self._inflight.get(normalized)
        if pending is not None:
            return await asyncio.shield(pending)

        # Subscribe before fetching so an invalidation during the first fetch is seen
        self._subscribe(normalized)
        generation = self._generations.get(normalized, 0)
        future = asyncio.ensure_future(fetcher())
        self._inflight[normalized] = future
        try:
            value = await asyncio.shield(future)
        except BaseException:
            if normalized not in self._entries:
                self.remove(normalized)
            raise
        finally:
            self._inflight.pop(normalized, None)

        self.set(normalized, value)
        if self._generations.get(normalized, 0) != generation:
            # Invalidated while the fetch was in flight
            self._entries[normalized].stale = True
        return value

    def remove(self, key: CacheKey) -> None:
        normalized = normalize_key(key)
        self._entries.pop(normalized, None)
        unsubscribe = self._unsubscribers.pop(normalized, None)
        if unsubscribe is not None:
            unsubscribe()

    def clear(self) -> None:
        for key in set(self._entries) | set(self._unsubscribers):
            self.remove(key)
        self._generations.clear()

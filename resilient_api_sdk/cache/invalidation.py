"""
Cache invalidation coordinator.

After a successful mutation, callers invalidate the affected cache keys and
every subscriber registered for a matching key is notified once. Subscribers
only mark their data stale; the next read fetches fresh data.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from .keys import CacheKey, NormalizedKey, key_matches, normalize_key

logger = logging.getLogger(__name__)

Subscriber = Callable[[NormalizedKey], None]


class CacheInvalidationCoordinator:
    """Registry of invalidation subscribers keyed by cache key."""

    def __init__(self):
        self._subscribers: Dict[NormalizedKey, List[Subscriber]] = {}

    def subscribe(self, key: CacheKey, callback: Subscriber) -> Callable[[], None]:
        """
        Register ``callback`` for ``key``.

        Returns:
            A callable that removes the registration
        """
        normalized = normalize_key(key)
        self._subscribers.setdefault(normalized, []).append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(normalized, callback)

        return unsubscribe

    def unsubscribe(self, key: CacheKey, callback: Subscriber) -> None:
        normalized = normalize_key(key)
        callbacks = self._subscribers.get(normalized)
        if not callbacks:
            return
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            del self._subscribers[normalized]

    def subscriber_count(self, key: Optional[CacheKey] = None) -> int:
        if key is None:
            return sum(len(callbacks) for callbacks in self._subscribers.values())
        return len(self._subscribers.get(normalize_key(key), []))

    def invalidate(self, keys: Iterable[CacheKey]) -> int:
        """
        Notify subscribers whose key equals, or starts with, any of ``keys``.

        Each subscriber is notified at most once per call. Keys without
        subscribers are ignored.

        Returns:
            Number of notifications delivered
        """
        targets = [normalize_key(key) for key in keys]
        if not targets:
            return 0

        notified = 0
        for registered, callbacks in list(self._subscribers.items()):
            if not any(key_matches(registered, target) for target in targets):
                continue
            for callback in list(callbacks):
                try:
                    callback(registered)
                except Exception as e:
                    logger.error(f"Error in invalidation subscriber for {registered}: {e}")
                    continue
                notified += 1

        logger.debug(f"Invalidated {targets}: {notified} subscriber(s) notified")
        return notified

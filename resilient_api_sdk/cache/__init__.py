"""Cache invalidation and stale-aware reads."""

from .invalidation import CacheInvalidationCoordinator
from .keys import CacheKey, ResourceKeys, key_matches, normalize_key, resource_key
from .query_cache import CacheEntry, QueryCache

__all__ = [
    "CacheInvalidationCoordinator",
    "CacheKey",
    "ResourceKeys",
    "key_matches",
    "normalize_key",
    "resource_key",
    "CacheEntry",
    "QueryCache",
]

"""
Cache keys.

A cache key is a string path (``"/api/decisions"``) or a tuple of parts
(``("decisions", 42)``). Keys are normalised to tuples so that prefix
matching works on whole path segments: ``"/api/decisions"`` is a prefix of
``"/api/decisions/42"`` but not of ``"/api/decisions-archive"``.
"""

from typing import Hashable, Optional, Tuple, Union

CacheKey = Union[str, Tuple[Hashable, ...]]
NormalizedKey = Tuple[Hashable, ...]


def normalize_key(key: CacheKey) -> NormalizedKey:
    if isinstance(key, str):
        parts = tuple(part for part in key.split("/") if part)
        if not parts:
            raise ValueError(f"Empty cache key: {key!r}")
        return parts
    if isinstance(key, (tuple, list)):
        if not key:
            raise ValueError("Empty cache key")
        return tuple(key)
    raise TypeError(f"Unsupported cache key type: {type(key).__name__}")


def key_matches(registered: NormalizedKey, invalidated: NormalizedKey) -> bool:
    """True when ``invalidated`` equals ``registered`` or is a prefix of it."""
    return registered[:len(invalidated)] == invalidated


class ResourceKeys:
    """Cache keys for the application's resource collections."""
    USER = ("user",)
    OFFERS = ("offers",)
    DECISIONS = ("decisions",)
    PROBLEM_TREES = ("problem-trees",)
    DRAFTED_PLANS = ("drafted-plans",)
    BRAIN_DUMP = ("brain-dump",)
    PRIORITIES = ("priorities",)
    WEEKLY_REFLECTIONS = ("weekly-reflections",)
    MONTHLY_CHECK_INS = ("monthly-check-ins",)
    CLARITY_LABS = ("clarity-labs",)
    OFFER_NOTES = ("offer-notes",)


def resource_key(name: str, resource_id: Optional[Hashable] = None) -> NormalizedKey:
    """
    Key for a collection, or for one item of it when ``resource_id`` is given.

    >>> resource_key("decisions", 7)
    ('decisions', 7)
    """
    base = getattr(ResourceKeys, name.upper().replace("-", "_"), None)
    if base is None:
        raise KeyError(f"Unknown resource collection: {name}")
    if resource_id is None:
        return base
    return base + (resource_id,)

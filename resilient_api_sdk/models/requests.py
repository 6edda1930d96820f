from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config.constants import DEFAULT_TIMEOUT_MS
from .policy import RetryPolicy


class HttpMethod(str, Enum):
    """Supported HTTP methods."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class CacheControl(str, Enum):
    """
    Cache hint for a request.

    DEFAULT reads through the query cache, NO_CACHE bypasses it and asks the
    server not to serve a cached copy, NO_STORE reads fresh and keeps nothing.
    """
    DEFAULT = "default"
    NO_CACHE = "no-cache"
    NO_STORE = "no-store"


class RequestDescriptor(BaseModel):
    """
    Everything needed to issue one call. Immutable once constructed.
    """
    model_config = ConfigDict(frozen=True)

    method: HttpMethod = Field(default=HttpMethod.GET)
    url: str = Field(..., min_length=1, description="Absolute URL or path relative to base_url")
    body: Optional[Any] = Field(default=None, description="JSON-serialisable request body")
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    retry_policy: Optional[RetryPolicy] = Field(default=None, description="Overrides the client default")
    cache_control: CacheControl = Field(default=CacheControl.DEFAULT)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    @property
    def is_mutation(self) -> bool:
        return self.method is not HttpMethod.GET

    def resolve_url(self, base_url: str = "") -> str:
        """Join a relative path onto ``base_url``."""
        if not base_url or "://" in self.url:
            return self.url
        return base_url.rstrip("/") + "/" + self.url.lstrip("/")

"""Client API."""

from .client import ResilientApiClient
from .session import NullSessionHandler, SessionHandler

__all__ = ["ResilientApiClient", "NullSessionHandler", "SessionHandler"]

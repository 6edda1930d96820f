"""Identity collaborator notified when the current session stops being valid."""

import logging
from typing import Any, Optional, Protocol


logger = logging.getLogger(__name__)


class SessionHandler(Protocol):
    """
    Owner of the user's session.

    ``on_session_invalid`` is called after an AUTHENTICATION failure with the
    navigation target to resume once the user has signed in again.
    """

    def current_identity(self) -> Optional[Any]:
        ...

    def on_session_invalid(self, return_to: Optional[str] = None) -> None:
        ...


class NullSessionHandler:
    """Session handler for clients without an identity layer; only logs."""

    def current_identity(self) -> Optional[Any]:
        return None

    def on_session_invalid(self, return_to: Optional[str] = None) -> None:
        logger.info(f"Session is no longer valid (return_to={return_to})")

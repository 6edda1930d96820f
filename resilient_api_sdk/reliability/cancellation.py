"""Cooperative cancellation shared by the executor and the retry controller."""

import asyncio
from typing import Optional


class CancellationSignal:
    """
    One-shot cancellation flag observed at suspension points.

    The request executor watches it while a network call is in flight; the
    retry controller watches it while waiting between attempts.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay_ms: float) -> bool:
        """
        Sleep for ``delay_ms`` unless cancelled first.

        Returns:
            True if the full delay elapsed, False if cancelled
        """
        if self.cancelled:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(delay_ms, 0) / 1000.0)
        except asyncio.TimeoutError:
            return True
        return False

"""
Cooperative cancellation for a swap run
"""
import asyncio
from typing import Optional

from .errors import SwapAbortedError


class CancelToken:
    """
    Cancellation flag shared by every suspension point of a run

    Receipt waits, HTTP calls and poll sleeps call `raise_if_cancelled()`
    or sleep through `sleep()`, so a cancel wakes the pipeline up at once.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by caller"):
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise SwapAbortedError(f"Swap aborted: {self.reason}")

    async def sleep(self, seconds: float):
        """Sleep, waking up early (and raising) if cancelled"""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()

"""Cancellable delayed callbacks on the running event loop."""

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class CancellableTimer:
    """Runs ``callback`` once after ``delay`` seconds unless cancelled.

    The callback may be a plain function or a coroutine function.
    """

    def __init__(self, delay: float, callback: Callable[[], Any], name: Optional[str] = None):
        self.delay = delay
        self._callback = callback
        self._name = name or "timer"
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "CancellableTimer":
        if self.active:
            return self
        self._task = asyncio.create_task(self._run(), name=self._name)
        return self

    def cancel(self) -> bool:
        """Cancel the timer. Returns False if it already fired or was never started."""
        if not self.active or self._task is asyncio.current_task():
            return False
        self._task.cancel()
        return True

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        try:
            result = self._callback()
            if asyncio.iscoroutine(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Timer {self._name} callback error: {e}")

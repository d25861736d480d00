"""
Shutdown Handler

Turns SIGTERM/SIGINT into cooperative cancellation:
- `cancelled` is set and the registered pipeline task is cancelled
- the process waits for `cancelled`, then sets `completed`
- `wait_for_completion` gives in-flight work a bounded grace period
"""

import asyncio
import logging
import signal
from datetime import timedelta
from typing import Iterable, List, Optional

logger = logging.getLogger("ShutdownHandler")


class ShutdownHandler:
    """Cancellation source and completion signal for the process lifetime"""

    def __init__(self, grace_period: timedelta = timedelta(seconds=5)):
        self.grace_period = grace_period
        self.cancelled = asyncio.Event()
        self.completed = asyncio.Event()
        self._tasks: List[asyncio.Task] = []
        self._signals: List[int] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def install(self, signals: Iterable[int] = (signal.SIGTERM, signal.SIGINT)) -> None:
        """Register the handler for OS signals on the running loop"""
        self._loop = asyncio.get_running_loop()
        for sig in signals:
            self._loop.add_signal_handler(sig, lambda s=sig: self.cancel(f"signal {s}"))
            self._signals.append(sig)

    def uninstall(self) -> None:
        if self._loop is None:
            return
        for sig in self._signals:
            self._loop.remove_signal_handler(sig)
        self._signals = []

    def register(self, task: asyncio.Task) -> asyncio.Task:
        """Cancel this task when shutdown is requested"""
        self._tasks.append(task)
        if self.cancelled.is_set():
            task.cancel()
        return task

    def cancel(self, reason: str = "requested") -> None:
        """Arm the cancellation source"""
        if self.cancelled.is_set():
            return
        logger.info(f"Termination requested ({reason}), cancelling")
        self.cancelled.set()
        for task in self._tasks:
            if not task.done():
                task.cancel()

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()

    async def wait_cancelled(self) -> None:
        await self.cancelled.wait()

    def complete(self) -> None:
        """Signal that the process finished unwinding"""
        self.completed.set()

    async def wait_for_completion(self) -> bool:
        """
        Wait up to the grace period for `complete()`

        Returns:
            True if completion was signalled in time
        """
        try:
            await asyncio.wait_for(self.completed.wait(), timeout=self.grace_period.total_seconds())
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Shutdown did not complete within {self.grace_period.total_seconds()}s")
            return False

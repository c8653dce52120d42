"""
Coalescing change notifier driving config cache refreshes.
"""

import asyncio
from typing import Awaitable, Callable

from survey_service.shared.logging import get_logger

logger = get_logger(__name__)


class ConfigChangeNotifier:
    """Single-consumer channel of "configs changed" signals.

    ``notify`` never blocks. Signals arriving while one is already pending
    collapse into it, so a burst of writes triggers one refresh after the
    refresh in progress.
    """

    def __init__(self, on_change: Callable[[], Awaitable[None]]) -> None:
        """Initialize notifier.

        Args:
            on_change: Callback run by the consumer for every delivered signal.
        """
        self._on_change = on_change
        self._pending: asyncio.Queue[None] = asyncio.Queue(maxsize=1)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def notify(self) -> None:
        """Signal that the configs table changed."""
        try:
            self._pending.put_nowait(None)
        except asyncio.QueueFull:
            logger.debug("Config change already pending")

    def start(self) -> None:
        """Start the consumer task on the running loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._consume(), name="config-change-consumer")
        logger.info("Config change consumer started")

    async def stop(self) -> None:
        """Cancel the consumer and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Config change consumer stopped")

    async def drain(self) -> None:
        """Deliver a pending signal, if any, on the caller's task."""
        try:
            self._pending.get_nowait()
        except asyncio.QueueEmpty:
            return
        await self._deliver()

    async def _consume(self) -> None:
        while True:
            await self._pending.get()
            await self._deliver()

    async def _deliver(self) -> None:
        try:
            await self._on_change()
        except Exception as e:
            # The cache keeps its last good snapshot; the next signal retries.
            logger.error(
                "Config change callback failed",
                extra={"error": str(e)},
                exc_info=True,
            )


__all__ = ["ConfigChangeNotifier"]

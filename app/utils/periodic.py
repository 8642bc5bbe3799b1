"""Explicit periodic background task bound to the event loop.

Used for housekeeping (e.g. sweeping expired rate-limit windows). The task
owns an ``asyncio.Event`` acting as its stop signal, so ``stop()`` returns
promptly instead of waiting out the current interval.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run a synchronous callback every ``interval_seconds`` until stopped.

    Attributes:
        name: Label used for the asyncio task and in logs.
        interval_seconds: Delay between runs; the first run happens one
            interval after ``start()``.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        interval_seconds: float,
        *,
        name: str = "periodic-task",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self.name = name
        self.interval_seconds = interval_seconds
        self._callback = callback
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the ticker on the running event loop.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self.running:
            return
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._task = asyncio.get_running_loop().create_task(self._run(stop_event), name=self.name)
        logger.info(
            "periodic_task.started",
            extra={"task": self.name, "interval_s": self.interval_seconds},
        )

    async def stop(self) -> None:
        """Signal the ticker to exit and wait for it to finish."""
        if self._task is None or self._stop_event is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("periodic_task.stopped", extra={"task": self.name, "runs": self.runs})

    def run_once(self) -> Any:
        """Invoke the callback immediately, logging instead of raising on failure."""
        try:
            result = self._callback()
        except Exception:
            logger.exception("periodic_task.failed", extra={"task": self.name})
            return None
        self.runs += 1
        return result

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                self.run_once()

# reviewsync Scheduler
# Periodic asyncio task with explicit pause/resume for host visibility changes

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Run an async callback on a fixed interval.

    The callback is awaited inline, so a run always finishes before the next
    one can start. Host code maps its own visibility or activity events onto
    pause() and resume(); resume() schedules a quick catch-up run.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[object]],
        interval: float,
        *,
        initial_delay: float = 1.5,
    ):
        """
        Initialize periodic task.

        Args:
            callback: Coroutine function to run on each tick.
            interval: Seconds between ticks.
            initial_delay: Seconds before the first tick after start or resume.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.callback = callback
        self.interval = interval
        self.initial_delay = max(0.0, initial_delay)
        self._task: asyncio.Task | None = None
        self._wake: asyncio.Event | None = None
        self._next_at = 0.0
        self._paused = False
        self._stopped = False
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def paused(self) -> bool:
        return self._paused

    def start(self) -> None:
        """Start ticking; the first tick fires after the initial delay."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        self._stopped = False
        self._paused = False
        self._next_at = loop.time() + self.initial_delay
        self._task = loop.create_task(self._run(self._wake))

    async def stop(self) -> None:
        """Stop ticking and wait for an in-progress tick to finish."""
        self._stopped = True
        self._poke()
        if self._task is not None:
            await self._task
            self._task = None

    def pause(self) -> None:
        """Suspend ticking until resume() is called."""
        self._paused = True
        self._poke()

    def resume(self) -> None:
        """Resume ticking with a catch-up tick after the initial delay."""
        self._paused = False
        self._next_at = asyncio.get_running_loop().time() + self.initial_delay
        self._poke()

    def trigger(self) -> None:
        """Run a tick as soon as possible (ignored while paused)."""
        self._next_at = asyncio.get_running_loop().time()
        self._poke()

    def next_run_in(self) -> float | None:
        """Seconds until the next tick, or None if paused or stopped."""
        if not self.running or self._paused:
            return None
        return max(0.0, self._next_at - asyncio.get_running_loop().time())

    def _poke(self) -> None:
        if self._wake is not None:
            self._wake.set()

    async def _run(self, wake: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()

        while not self._stopped:
            timeout = None if self._paused else max(0.0, self._next_at - loop.time())
            try:
                await asyncio.wait_for(wake.wait(), timeout)
            except asyncio.TimeoutError:
                pass
            wake.clear()

            if self._stopped:
                break
            if self._paused or loop.time() < self._next_at:
                continue

            self._next_at = loop.time() + self.interval
            self.runs += 1
            try:
                await self.callback()
            except Exception:
                logger.exception("Scheduled tick failed")

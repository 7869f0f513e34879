"""Playback ticker for the time window."""

import asyncio
from typing import Callable

import structlog

from weather_overlay.application.services.time_window import TimeWindow

logger = structlog.get_logger()

DEFAULT_INTERVAL_SECONDS = 1.0


class PlaybackTicker:
    """Advances a TimeWindow by one hour per interval while it is playing."""

    def __init__(
        self,
        window: TimeWindow,
        on_tick: Callable[[], None] | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        """Initialize ticker."""
        self.window = window
        self.on_tick = on_tick
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start playback (idempotent)."""
        self.window.play()
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def stop(self) -> None:
        self.window.pause()
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> int:
        ticks = 0
        logger.info("playback_started", interval_seconds=self.interval_seconds)
        while self.window.is_playing:
            await asyncio.sleep(self.interval_seconds)
            if not self.window.is_playing:
                break
            if not self.window.step_forward(1):
                break
            ticks += 1
            if self.on_tick is not None:
                self.on_tick()
        logger.info("playback_finished", ticks=ticks)
        return ticks

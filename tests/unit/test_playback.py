"""Unit tests for PlaybackTicker."""

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from weather_overlay.application.services.time_window import TimeWindow
from weather_overlay.infrastructure.runtime.playback import PlaybackTicker


@pytest.fixture
def window(clock):
    """Create instant window."""
    return TimeWindow(clock, horizon_days=15)


@pytest.mark.asyncio
async def test_playback_stops_at_horizon(window, clock):
    """Test playback advances hourly and stops at the horizon end."""
    window.jump_to(clock.now() + timedelta(days=15, hours=-3))
    on_tick = MagicMock()
    ticker = PlaybackTicker(window, on_tick=on_tick, interval_seconds=0)

    ticks = await ticker.start()

    assert ticks == 3
    assert on_tick.call_count == 3
    assert window.current_time == clock.now() + timedelta(days=15)
    assert window.is_playing is False
    assert ticker.running is False


@pytest.mark.asyncio
async def test_stop_cancels_playback(window, clock):
    """Test stop pauses the window and ends the task."""
    ticker = PlaybackTicker(window, interval_seconds=10)

    ticker.start()
    assert ticker.running
    assert window.is_playing
    await ticker.stop()

    assert not ticker.running
    assert not window.is_playing
    assert window.current_time == clock.now()


@pytest.mark.asyncio
async def test_pause_ends_loop(window):
    """Test pausing the window ends the loop after the current sleep."""
    ticker = PlaybackTicker(window, interval_seconds=0)
    task = ticker.start()
    window.pause()

    assert await task == 0


@pytest.mark.asyncio
async def test_start_is_idempotent(window):
    """Test starting twice reuses the running task."""
    ticker = PlaybackTicker(window, interval_seconds=10)
    first = ticker.start()
    second = ticker.start()

    assert first is second
    await ticker.stop()
    await asyncio.sleep(0)
    assert first.cancelled()

"""Movable time window with horizon clamping and playback state."""

from datetime import timedelta

import structlog

from weather_overlay.domain.entities import INSTANT_WINDOW, WindowBounds
from weather_overlay.domain.enums import WindowMode
from weather_overlay.domain.errors import InvalidWindowError, WindowModeError
from weather_overlay.domain.ports import ClockPort
from weather_overlay.domain.types import Timestamp

logger = structlog.get_logger()

DEFAULT_HORIZON_DAYS = 15
DEFAULT_RANGE_HALF_SPAN = timedelta(hours=24)


class TimeWindow:
    """Either a single instant or a [start, end) range inside the horizon.

    The horizon is ``[now - horizon_days, now + horizon_days]`` and is
    recomputed from the clock on every call. In instant mode the horizon
    bounds the instant itself; the one-hour aggregation span derived from it
    may reach past the horizon end. In range mode both bounds stay inside.
    """

    def __init__(self, clock: ClockPort, horizon_days: int = DEFAULT_HORIZON_DAYS) -> None:
        """Initialize at the current time in instant mode."""
        self.clock = clock
        self.horizon_days = horizon_days
        now = clock.now()
        self.mode = WindowMode.INSTANT
        self.current_time = now
        self.range_start = now - DEFAULT_RANGE_HALF_SPAN
        self.range_end = now + DEFAULT_RANGE_HALF_SPAN
        self.is_playing = False

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def horizon(self) -> tuple[Timestamp, Timestamp]:
        now = self.clock.now()
        span = timedelta(days=self.horizon_days)
        return now - span, now + span

    def bounds(self) -> WindowBounds:
        """Immutable snapshot used for aggregation."""
        if self.mode is WindowMode.RANGE:
            return WindowBounds(self.range_start, self.range_end, WindowMode.RANGE)
        return WindowBounds(self.current_time, self.current_time + INSTANT_WINDOW, WindowMode.INSTANT)

    @property
    def is_range_mode(self) -> bool:
        return self.mode is WindowMode.RANGE

    @property
    def duration(self) -> timedelta:
        return self.bounds().duration

    def contains(self, ts: Timestamp) -> bool:
        return self.bounds().contains(ts)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def can_step_forward(self, hours: float = 1) -> bool:
        return self._shift_allowed(_step(hours))

    def can_step_backward(self, hours: float = 1) -> bool:
        return self._shift_allowed(-_step(hours))

    def step_forward(self, hours: float = 1) -> bool:
        """Shift forward. A step rejected at the horizon end also stops playback."""
        delta = _step(hours)
        if not self._shift_allowed(delta):
            if self.is_playing:
                logger.info("playback_stopped_at_horizon", position=self.bounds().start.isoformat())
            self.is_playing = False
            return False
        self._shift(delta)
        return True

    def step_backward(self, hours: float = 1) -> bool:
        delta = -_step(hours)
        if not self._shift_allowed(delta):
            return False
        self._shift(delta)
        return True

    def _shift_allowed(self, delta: timedelta) -> bool:
        """Only the leading edge is checked; the horizon moves with the clock."""
        horizon_start, horizon_end = self.horizon()
        if self.mode is WindowMode.RANGE:
            start, end = self.range_start + delta, self.range_end + delta
        else:
            start = end = self.current_time + delta
        if delta > timedelta(0):
            return end <= horizon_end
        return start >= horizon_start

    def _shift(self, delta: timedelta) -> None:
        if self.mode is WindowMode.RANGE:
            self.range_start += delta
            self.range_end += delta
        else:
            self.current_time += delta

    # ------------------------------------------------------------------
    # Absolute moves
    # ------------------------------------------------------------------

    def jump_to(self, target: Timestamp) -> bool:
        """Move to target; rejected outside the horizon.

        In range mode the window is centred on target, then shifted back
        inside the horizon with its duration preserved, so it always
        contains target.
        """
        horizon_start, horizon_end = self.horizon()
        if target < horizon_start or target > horizon_end:
            return False

        if self.mode is WindowMode.INSTANT:
            self.current_time = target
            return True

        duration = self.range_end - self.range_start
        start = target - duration / 2
        end = start + duration
        if end > horizon_end:
            end = horizon_end
            start = end - duration
        if start < horizon_start:
            start = horizon_start
            end = min(start + duration, horizon_end)
        self.range_start, self.range_end = start, end
        return True

    def set_duration(self, hours: float) -> None:
        """Resize the range keeping start fixed, clipping at the horizon."""
        if self.mode is not WindowMode.RANGE:
            raise WindowModeError("Duration can only be set in range mode")
        if hours <= 0:
            raise InvalidWindowError(f"Duration must be positive, got {hours}")

        horizon_start, horizon_end = self.horizon()
        duration = timedelta(hours=hours)
        start = self.range_start
        end = start + duration
        if end > horizon_end:
            end = horizon_end
            start = max(end - duration, horizon_start)
        self.range_start, self.range_end = start, end

    def reset_to_now(self) -> None:
        now = self.clock.now()
        if self.mode is WindowMode.RANGE:
            half = (self.range_end - self.range_start) / 2
            self.range_start, self.range_end = now - half, now + half
        else:
            self.current_time = now

    def set_range_mode(self, enabled: bool) -> None:
        self.mode = WindowMode.RANGE if enabled else WindowMode.INSTANT
        self._clamp()

    def progress(self) -> float:
        """Window start position within the horizon, in percent."""
        horizon_start, horizon_end = self.horizon()
        total = (horizon_end - horizon_start).total_seconds()
        position = (self.bounds().start - horizon_start).total_seconds()
        return position / total * 100

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def play(self) -> None:
        self.is_playing = True

    def pause(self) -> None:
        self.is_playing = False

    def toggle_playback(self) -> bool:
        self.is_playing = not self.is_playing
        return self.is_playing

    def _clamp(self) -> None:
        """Pull stale state back inside the (moving) horizon."""
        horizon_start, horizon_end = self.horizon()
        if self.mode is WindowMode.INSTANT:
            self.current_time = min(max(self.current_time, horizon_start), horizon_end)
            return

        duration = min(self.range_end - self.range_start, horizon_end - horizon_start)
        if self.range_start < horizon_start:
            self.range_start, self.range_end = horizon_start, horizon_start + duration
        elif self.range_end > horizon_end:
            self.range_start, self.range_end = horizon_end - duration, horizon_end


def _step(hours: float) -> timedelta:
    if hours <= 0:
        raise InvalidWindowError(f"Step must be positive, got {hours}")
    return timedelta(hours=hours)

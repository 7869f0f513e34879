"""Refresh region values and colors - main orchestration."""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, MutableMapping, Sequence

import structlog

from weather_overlay.application.services.aggregation import synthetic_value
from weather_overlay.application.services.color_rules import color_for
from weather_overlay.application.services.metric_catalog import MetricCatalog
from weather_overlay.application.services.time_window import TimeWindow
from weather_overlay.application.services.weather_fetcher import WeatherFetcher
from weather_overlay.application.use_cases import region_stats
from weather_overlay.domain.entities import (
    AggregateResult,
    Metric,
    Region,
    RegionStats,
    WindowBounds,
)
from weather_overlay.domain.enums import FetchState
from weather_overlay.domain.errors import ConfigurationError, RegionNotFoundError
from weather_overlay.domain.ports import ClockPort
from weather_overlay.infrastructure.observability.metrics import (
    refresh_duration_seconds,
    stale_results_discarded,
)

logger = structlog.get_logger()

DEFAULT_DEBOUNCE_SECONDS = 0.5
DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_PAUSE_SECONDS = 0.1

RegionSource = Iterable[Region] | Callable[[], Iterable[Region]]
WindowSource = TimeWindow | WindowBounds


@dataclass(frozen=True)
class RefreshReport:
    """Summary of one refresh call."""

    generation: int
    total: int
    applied: int
    discarded: int
    synthetic: int


@dataclass(frozen=True)
class _RegionOutcome:
    applied: bool
    synthetic: bool


class RegionRefreshOrchestrator:
    """Debounced, concurrent refresh of region values and colors.

    Each refresh call gets a new generation number. A region's result is
    written back only if no later call has been issued for that region, so
    a slow older call can never overwrite a newer one.
    """

    def __init__(
        self,
        fetcher: WeatherFetcher,
        metrics: MetricCatalog,
        clock: ClockPort,
        regions: MutableMapping[str, Region] | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_pause_seconds: float = DEFAULT_BATCH_PAUSE_SECONDS,
    ) -> None:
        """Initialize orchestrator."""
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.fetcher = fetcher
        self.metrics = metrics
        self.clock = clock
        self.regions = regions if regions is not None else {}
        self.debounce_seconds = debounce_seconds
        self.batch_size = batch_size
        self.batch_pause_seconds = batch_pause_seconds
        self._generation = 0
        self._latest_generation: dict[str, int] = {}
        self._timer: asyncio.Task | None = None
        self._latest: asyncio.Task | None = None
        self._scheduled: set[asyncio.Task] = set()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def has_pending_refresh(self) -> bool:
        return any(not task.done() for task in self._scheduled)

    # ========================================================================
    # Refresh
    # ========================================================================

    async def refresh_all(self, regions: Iterable[Region], window: WindowSource) -> RefreshReport:
        """Refresh every region against one window snapshot."""
        bounds = _snapshot(window)
        # Resolve metrics up front so configuration errors surface before any fetch
        work = [(region, self.metrics.get(region.metric_id)) for region in regions]
        generation = self._claim(region for region, _ in work)

        started = time.perf_counter()
        logger.info(
            "refresh_started",
            generation=generation,
            regions=len(work),
            window_start=bounds.start.isoformat(),
            window_end=bounds.end.isoformat(),
        )

        outcomes: list[_RegionOutcome] = []
        for index, batch in enumerate(_batches(work, self.batch_size)):
            if index > 0 and self.batch_pause_seconds > 0:
                await asyncio.sleep(self.batch_pause_seconds)
            outcomes.extend(
                await asyncio.gather(
                    *(self._refresh_region(region, metric, bounds, generation) for region, metric in batch)
                )
            )

        elapsed = time.perf_counter() - started
        refresh_duration_seconds.observe(elapsed)
        report = RefreshReport(
            generation=generation,
            total=len(outcomes),
            applied=sum(1 for o in outcomes if o.applied),
            discarded=sum(1 for o in outcomes if not o.applied),
            synthetic=sum(1 for o in outcomes if o.synthetic),
        )
        logger.info(
            "refresh_completed",
            generation=generation,
            applied=report.applied,
            discarded=report.discarded,
            synthetic=report.synthetic,
            duration_seconds=round(elapsed, 3),
        )
        return report

    async def refresh_one(self, region_id: str, window: WindowSource) -> RefreshReport:
        """Refresh a single region immediately, bypassing the debounce."""
        region = self.regions.get(region_id)
        if region is None:
            raise RegionNotFoundError(f"Region not found: {region_id}")
        return await self.refresh_all([region], window)

    def schedule_refresh(self, regions: RegionSource, window: WindowSource) -> asyncio.Task:
        """Refresh after a quiet period, replacing any refresh still waiting.

        The region set and window are read when the timer fires, not when
        scheduled. A refresh that has already started is left to finish.
        """
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        task = asyncio.get_running_loop().create_task(self._debounced(regions, window))
        self._timer = self._latest = task
        self._scheduled.add(task)
        task.add_done_callback(self._scheduled.discard)
        return task

    async def wait_for_pending(self) -> RefreshReport | None:
        """Await every scheduled refresh, including ones already running.

        Returns the report of the most recently scheduled refresh, or None if
        nothing was scheduled or it was superseded before firing.
        """
        while True:
            live = [task for task in self._scheduled if not task.done()]
            if not live:
                break
            await asyncio.wait(live)
        task = self._latest
        if task is None or task.cancelled():
            return None
        return task.result()

    def stats(self, regions: Iterable[Region] | None = None) -> RegionStats:
        return region_stats.run(self.regions.values() if regions is None else regions)

    # ========================================================================
    # Internals
    # ========================================================================

    async def _debounced(self, regions: RegionSource, window: WindowSource) -> RefreshReport | None:
        await asyncio.sleep(self.debounce_seconds)
        # Past the quiet period; a newer schedule no longer cancels this one
        if self._timer is asyncio.current_task():
            self._timer = None
        region_list = list(regions() if callable(regions) else regions)
        try:
            return await self.refresh_all(region_list, window)
        except ConfigurationError as e:
            logger.error("scheduled_refresh_rejected", error=str(e))
            return None

    def _claim(self, regions: Iterable[Region]) -> int:
        self._generation += 1
        for region in regions:
            self._latest_generation[region.region_id] = self._generation
        return self._generation

    async def _refresh_region(
        self,
        region: Region,
        metric: Metric,
        bounds: WindowBounds,
        generation: int,
    ) -> _RegionOutcome:
        try:
            result = await self.fetcher.aggregate(region, metric, bounds)
        except Exception as e:
            logger.error("region_aggregate_failed", region_id=region.region_id, exc_info=True)
            result = AggregateResult(
                value=synthetic_value(metric, self.fetcher.rng),
                synthetic=True,
                state=FetchState.FALLBACK_SYNTHESIZED,
                error=f"Unexpected error: {e}",
            )

        if self._latest_generation.get(region.region_id) != generation:
            stale_results_discarded.inc()
            logger.debug(
                "stale_result_discarded",
                region_id=region.region_id,
                generation=generation,
                latest=self._latest_generation.get(region.region_id),
            )
            return _RegionOutcome(applied=False, synthetic=result.synthetic)

        # Color uses the metric's rules as they are now, not as they were when scheduled
        region.value = result.value
        region.color = color_for(metric.color_rules, result.value)
        region.error = result.error
        region.synthetic = result.synthetic
        region.last_updated = self.clock.now()
        return _RegionOutcome(applied=True, synthetic=result.synthetic)


def _snapshot(window: WindowSource) -> WindowBounds:
    return window.bounds() if isinstance(window, TimeWindow) else window


def _batches(items: Sequence, size: int) -> Iterator[Sequence]:
    for start in range(0, len(items), size):
        yield items[start : start + size]

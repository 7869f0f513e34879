"""Dashboard session: the command surface used by the map and sidebar."""

import uuid
from typing import Sequence

import structlog

from weather_overlay.application.services import geometry
from weather_overlay.application.services.color_rules import build_rule
from weather_overlay.application.services.metric_catalog import MetricCatalog
from weather_overlay.application.services.time_window import TimeWindow
from weather_overlay.application.use_cases.refresh_regions import (
    RefreshReport,
    RegionRefreshOrchestrator,
)
from weather_overlay.domain.entities import Region, RegionStats
from weather_overlay.domain.errors import RegionNotFoundError
from weather_overlay.domain.ports import ClockPort, ConfigStorePort
from weather_overlay.domain.types import ColorRuleDict, Coordinate, JsonValue, Timestamp
from weather_overlay.infrastructure.runtime.playback import PlaybackTicker

logger = structlog.get_logger()

DEFAULT_METRIC_ID = "temperature"
DEFAULT_MAP_CENTER = (52.52, 13.41)
DEFAULT_MAP_ZOOM = 10


class DashboardSession:
    """Owns the region set, metric catalog and time window for one dashboard.

    Every mutation that can change a region's value or color schedules a
    debounced refresh on the orchestrator.
    """

    def __init__(
        self,
        window: TimeWindow,
        metrics: MetricCatalog,
        orchestrator: RegionRefreshOrchestrator,
        clock: ClockPort,
        store: ConfigStorePort | None = None,
        playback_interval_seconds: float = 1.0,
    ) -> None:
        """Initialize session."""
        self.window = window
        self.metrics = metrics
        self.orchestrator = orchestrator
        self.clock = clock
        self.store = store
        self.regions: dict[str, Region] = orchestrator.regions
        self.map_center: Coordinate = DEFAULT_MAP_CENTER
        self.map_zoom = DEFAULT_MAP_ZOOM
        self.ticker = PlaybackTicker(window, on_tick=self._changed, interval_seconds=playback_interval_seconds)

    # ------------------------------------------------------------------
    # Timeline commands
    # ------------------------------------------------------------------

    def step_forward(self, hours: float = 1) -> bool:
        return self._if_moved(self.window.step_forward(hours))

    def step_backward(self, hours: float = 1) -> bool:
        return self._if_moved(self.window.step_backward(hours))

    def jump_to(self, target: Timestamp) -> bool:
        return self._if_moved(self.window.jump_to(target))

    def set_duration(self, hours: float) -> None:
        self.window.set_duration(hours)
        self._changed()

    def set_range_mode(self, enabled: bool) -> None:
        self.window.set_range_mode(enabled)
        self._changed()

    def reset_to_now(self) -> None:
        self.window.reset_to_now()
        self._changed()

    async def toggle_playback(self) -> bool:
        if self.ticker.running:
            await self.ticker.stop()
        else:
            self.ticker.start()
        return self.window.is_playing

    # ------------------------------------------------------------------
    # Region editor commands
    # ------------------------------------------------------------------

    def add_region(
        self,
        vertices: Sequence[Coordinate],
        metric_id: str = DEFAULT_METRIC_ID,
        name: str | None = None,
    ) -> Region:
        self.metrics.get(metric_id)
        region = Region(
            region_id=uuid.uuid4().hex,
            vertices=tuple(vertices),
            metric_id=metric_id,
            name=name or f"Region {len(self.regions) + 1}",
            created_at=self.clock.now(),
        )
        self.regions[region.region_id] = region
        logger.info("region_added", region_id=region.region_id, metric_id=metric_id, vertices=len(region.vertices))
        self._changed()
        return region

    def set_region_metric(self, region_id: str, metric_id: str) -> Region:
        self.metrics.get(metric_id)
        region = self._region(region_id)
        region.metric_id = metric_id
        self._changed()
        return region

    def rename_region(self, region_id: str, name: str) -> Region:
        region = self._region(region_id)
        region.name = name
        return region

    def remove_region(self, region_id: str) -> None:
        self._region(region_id)
        del self.regions[region_id]
        logger.info("region_removed", region_id=region_id)
        self._changed()

    def region_at(self, point: Coordinate) -> Region | None:
        """Topmost (most recently added) region containing point."""
        for region in reversed(list(self.regions.values())):
            if geometry.point_in_polygon(point, region.vertices):
                return region
        return None

    def focus_region(self, region_id: str, width_px: int, height_px: int) -> tuple[Coordinate, int]:
        """Center the map on a region at the tightest zoom that fits it."""
        region = self._region(region_id)
        self.map_center = geometry.centroid(region.vertices)
        self.map_zoom = geometry.optimal_zoom(geometry.bounding_box(region.vertices), width_px, height_px)
        return self.map_center, self.map_zoom

    async def refresh_region(self, region_id: str) -> RefreshReport:
        return await self.orchestrator.refresh_one(region_id, self.window)

    def stats(self) -> RegionStats:
        return self.orchestrator.stats()

    # ------------------------------------------------------------------
    # Rule editor commands
    # ------------------------------------------------------------------

    def add_rule(self, metric_id: str, record: ColorRuleDict) -> None:
        self.metrics.add_rule(metric_id, build_rule(record))
        self._changed()

    def update_rule(self, metric_id: str, index: int, record: ColorRuleDict) -> None:
        self.metrics.update_rule(metric_id, index, build_rule(record))
        self._changed()

    def delete_rule(self, metric_id: str, index: int) -> None:
        self.metrics.delete_rule(metric_id, index)
        self._changed()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        if self.store is None:
            return
        view: dict[str, JsonValue] = {"map_center": list(self.map_center), "map_zoom": self.map_zoom}
        self.store.save(list(self.regions.values()), list(self.metrics), view)

    def restore(self) -> int:
        """Load regions and metrics from the store; return the region count."""
        if self.store is None:
            return 0
        regions, metrics, view = self.store.load()
        catalog = MetricCatalog(metrics) if metrics else self.metrics
        # Validate the whole snapshot before touching current state
        for region in regions:
            catalog.get(region.metric_id)

        self.metrics = catalog
        self.orchestrator.metrics = catalog
        self.regions.clear()
        self.regions.update((region.region_id, region) for region in regions)
        if "map_center" in view:
            lat, lon = view["map_center"]
            self.map_center = (lat, lon)
        if "map_zoom" in view:
            self.map_zoom = int(view["map_zoom"])
        return len(self.regions)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _region(self, region_id: str) -> Region:
        region = self.regions.get(region_id)
        if region is None:
            raise RegionNotFoundError(f"Region not found: {region_id}")
        return region

    def _if_moved(self, moved: bool) -> bool:
        if moved:
            self._changed()
        return moved

    def _changed(self) -> None:
        if not self.regions:
            return
        self.orchestrator.schedule_refresh(lambda: list(self.regions.values()), self.window)

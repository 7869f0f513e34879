"""JSON file store for region and metric definitions."""

import json
import os
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from weather_overlay.application.dto.config import DashboardSnapshot, MetricModel, RegionModel
from weather_overlay.domain.entities import Metric, Region
from weather_overlay.domain.errors import ConfigurationError
from weather_overlay.domain.ports import ConfigStorePort
from weather_overlay.domain.types import JsonValue

logger = structlog.get_logger()


class JsonConfigStore(ConfigStorePort):
    """Best-effort snapshot of regions, metrics and map view.

    Derived region values and the weather cache are never written.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize store."""
        self.path = Path(path)

    def save(
        self,
        regions: list[Region],
        metrics: list[Metric],
        view: dict[str, JsonValue] | None = None,
    ) -> None:
        """Write the snapshot atomically (temp file + rename)."""
        view = view or {}
        snapshot = DashboardSnapshot(
            regions=[RegionModel.from_entity(r) for r in regions],
            metrics=[MetricModel.from_entity(m) for m in metrics],
            map_center=view.get("map_center"),
            map_zoom=view.get("map_zoom"),
        )
        content = snapshot.model_dump_json(by_alias=True, indent=2)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, self.path)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise

        logger.info("config_saved", path=str(self.path), regions=len(regions), metrics=len(metrics))

    def load(self) -> tuple[list[Region], list[Metric], dict[str, JsonValue]]:
        """Read the snapshot; a missing file yields an empty configuration."""
        if not self.path.exists():
            logger.info("config_not_found", path=str(self.path))
            return [], [], {}

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            snapshot = DashboardSnapshot.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid configuration snapshot {self.path}: {e}") from e

        metrics = [m.to_entity() for m in snapshot.metrics]
        regions = [r.to_entity() for r in snapshot.regions]
        view: dict[str, JsonValue] = {}
        if snapshot.map_center is not None:
            view["map_center"] = list(snapshot.map_center)
        if snapshot.map_zoom is not None:
            view["map_zoom"] = snapshot.map_zoom

        logger.info("config_loaded", path=str(self.path), regions=len(regions), metrics=len(metrics))
        return regions, metrics, view

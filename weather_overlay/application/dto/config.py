"""Persisted configuration DTOs."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from weather_overlay.application.services.color_rules import build_rule, rule_to_record
from weather_overlay.domain.entities import Metric, Region


class ColorRuleModel(BaseModel):
    """Color rule record."""

    operator: str
    value: float
    operator2: str | None = None
    value2: float | None = None
    color: str


class MetricModel(BaseModel):
    """Metric (data source) record."""

    model_config = ConfigDict(populate_by_name=True)

    metric_id: str = Field(alias="id")
    name: str
    provider_field: str = Field(alias="field")
    unit: str = ""
    color_rules: list[ColorRuleModel] = Field(default_factory=list, alias="colorRules")

    def to_entity(self) -> Metric:
        return Metric(
            metric_id=self.metric_id,
            name=self.name,
            provider_field=self.provider_field,
            unit=self.unit,
            color_rules=[build_rule(r.model_dump()) for r in self.color_rules],
        )

    @classmethod
    def from_entity(cls, metric: Metric) -> "MetricModel":
        return cls(
            metric_id=metric.metric_id,
            name=metric.name,
            provider_field=metric.provider_field,
            unit=metric.unit,
            color_rules=[ColorRuleModel(**rule_to_record(r)) for r in metric.color_rules],
        )


class RegionModel(BaseModel):
    """Region definition record. Derived values are never persisted."""

    model_config = ConfigDict(populate_by_name=True)

    region_id: str = Field(alias="id")
    name: str = ""
    coordinates: list[tuple[float, float]]
    metric_id: str = Field(alias="dataSource")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    def to_entity(self) -> Region:
        return Region(
            region_id=self.region_id,
            vertices=tuple(self.coordinates),
            metric_id=self.metric_id,
            name=self.name,
            created_at=self.created_at,
        )

    @classmethod
    def from_entity(cls, region: Region) -> "RegionModel":
        return cls(
            region_id=region.region_id,
            name=region.name,
            coordinates=list(region.vertices),
            metric_id=region.metric_id,
            created_at=region.created_at,
        )


class DashboardSnapshot(BaseModel):
    """Everything persisted across restarts."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = 1
    regions: list[RegionModel] = Field(default_factory=list)
    metrics: list[MetricModel] = Field(default_factory=list)
    map_center: tuple[float, float] | None = Field(default=None, alias="mapCenter")
    map_zoom: int | None = Field(default=None, alias="mapZoom")

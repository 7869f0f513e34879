"""Domain types and aliases."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, TypedDict

Timestamp = datetime
Coordinate = tuple[float, float]

# JSON-serializable types (recursive)
if TYPE_CHECKING:
    JsonValue = str | int | float | bool | None | dict[str, "JsonValue"] | list["JsonValue"]
else:
    JsonValue = str | int | float | bool | None | dict | list


# Provider payload structure
class HourlyPayloadDict(TypedDict, total=False):
    """Hourly block of the provider response."""
    time: list[str]


class ProviderPayloadDict(TypedDict, total=False):
    """Provider response structure (only the fields the engine reads)."""
    latitude: float
    longitude: float
    timezone: str
    hourly: HourlyPayloadDict


# Persisted configuration structure
class ColorRuleDict(TypedDict, total=False):
    """Color rule record as stored in configuration."""
    operator: str
    value: float
    operator2: str | None
    value2: float | None
    color: str


class MetricDict(TypedDict):
    """Metric record as stored in configuration."""
    id: str
    name: str
    field: str
    unit: str
    color_rules: list[ColorRuleDict]


class RegionDict(TypedDict, total=False):
    """Region record as stored in configuration."""
    id: str
    name: str
    coordinates: list[list[float]]
    metric_id: str
    created_at: str


class GeoJsonFeatureDict(TypedDict):
    """GeoJSON polygon feature."""
    type: str
    properties: dict[str, JsonValue]
    geometry: dict[str, JsonValue]

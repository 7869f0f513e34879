"""Domain entities."""

import math
from dataclasses import dataclass, field
from datetime import timedelta

from weather_overlay.domain.enums import ComparisonOp, FetchState, WindowMode
from weather_overlay.domain.errors import InvalidGeometryError
from weather_overlay.domain.types import Coordinate, Timestamp

MIN_VERTICES = 3
MAX_VERTICES = 12
DEFAULT_COLOR = "#666666"
INSTANT_WINDOW = timedelta(hours=1)


def vertex_errors(vertices: object) -> list[str]:
    """Return every problem with a region's vertex list (empty when valid)."""
    if not isinstance(vertices, (list, tuple)):
        return ["Coordinates must be a sequence of (lat, lon) pairs"]

    errors: list[str] = []
    if len(vertices) < MIN_VERTICES:
        errors.append(f"Polygon must have at least {MIN_VERTICES} points")
    if len(vertices) > MAX_VERTICES:
        errors.append(f"Polygon cannot have more than {MAX_VERTICES} points")

    for index, coord in enumerate(vertices):
        if not isinstance(coord, (list, tuple)) or len(coord) != 2:
            errors.append(f"Invalid coordinate at index {index}: must be [lat, lon]")
            continue
        lat, lon = coord
        if not _is_number(lat):
            errors.append(f"Invalid latitude at index {index}: must be a number")
        elif not -90 <= lat <= 90:
            errors.append(f"Invalid latitude at index {index}: must be between -90 and 90")
        if not _is_number(lon):
            errors.append(f"Invalid longitude at index {index}: must be a number")
        elif not -180 <= lon <= 180:
            errors.append(f"Invalid longitude at index {index}: must be between -180 and 180")
    return errors


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


@dataclass(frozen=True)
class SecondaryClause:
    """Second bound of a compound color rule."""

    operator: ComparisonOp
    threshold: float


@dataclass(frozen=True)
class ColorRule:
    """Threshold rule mapping a scalar to a display color."""

    operator: ComparisonOp
    threshold: float
    color: str
    secondary: SecondaryClause | None = None

    @property
    def is_compound(self) -> bool:
        return self.secondary is not None


@dataclass
class Metric:
    """Weather quantity with unit and ordered color rules (a "data source")."""

    metric_id: str
    name: str
    provider_field: str
    unit: str
    color_rules: list[ColorRule] = field(default_factory=list)


@dataclass
class Region:
    """User-drawn polygon. The engine writes only the derived fields."""

    region_id: str
    vertices: tuple[Coordinate, ...]
    metric_id: str
    name: str = ""
    created_at: Timestamp | None = None
    value: float | None = None
    color: str | None = None
    error: str | None = None
    synthetic: bool = False
    last_updated: Timestamp | None = None

    def __post_init__(self) -> None:
        errors = vertex_errors(self.vertices)
        if errors:
            raise InvalidGeometryError(f"Region {self.region_id}: {'; '.join(errors)}")
        self.vertices = tuple((float(lat), float(lon)) for lat, lon in self.vertices)


@dataclass(frozen=True)
class WindowBounds:
    """Immutable snapshot of a time window."""

    start: Timestamp
    end: Timestamp
    mode: WindowMode

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, ts: Timestamp) -> bool:
        """Inclusive containment, matching aggregation semantics."""
        return self.start <= ts <= self.end


@dataclass(frozen=True)
class CacheKey:
    """Cache key: centroid rounded to 4 decimals plus metric identifier."""

    latitude: float
    longitude: float
    metric_id: str

    @classmethod
    def from_centroid(cls, centroid: Coordinate, metric_id: str) -> "CacheKey":
        lat, lon = centroid
        return cls(round(lat, 4), round(lon, 4), metric_id)


@dataclass(frozen=True)
class RawSeries:
    """Index-aligned hourly timestamps and values from the provider."""

    timestamps: tuple[Timestamp, ...]
    values: tuple[float | None, ...]


@dataclass(frozen=True)
class CacheEntry:
    """Cached raw series with the time it was fetched."""

    series: RawSeries
    fetched_at: Timestamp


@dataclass(frozen=True)
class AggregateResult:
    """Outcome of aggregating one region's metric over a window."""

    value: float
    synthetic: bool
    state: FetchState
    error: str | None = None
    cache_hit: bool = False


@dataclass(frozen=True)
class RegionStats:
    """Counts over a region set."""

    total: int
    with_value: int
    in_error: int
    by_metric: dict[str, int]

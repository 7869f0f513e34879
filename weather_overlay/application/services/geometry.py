"""Pure geometry helpers for region polygons.

Coordinates are ``(latitude, longitude)`` pairs in degrees throughout, except
for GeoJSON which uses ``[longitude, latitude]``.
"""

import math
from dataclasses import dataclass
from typing import Sequence

from weather_overlay.domain.entities import vertex_errors
from weather_overlay.domain.errors import InvalidGeometryError
from weather_overlay.domain.types import Coordinate, GeoJsonFeatureDict

EARTH_RADIUS_M = 6371e3
WORLD_TILE_PX = 256
MAX_ZOOM = 18


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned lat/lon bounds."""

    north: float
    south: float
    east: float
    west: float


def centroid(vertices: Sequence[Coordinate]) -> Coordinate:
    """Arithmetic mean of vertex coordinates."""
    if not vertices:
        raise InvalidGeometryError("Cannot compute centroid of an empty polygon")
    lat = sum(v[0] for v in vertices) / len(vertices)
    lon = sum(v[1] for v in vertices) / len(vertices)
    return lat, lon


def bounding_box(vertices: Sequence[Coordinate]) -> BoundingBox:
    """Bounding box of the vertices."""
    if not vertices:
        raise InvalidGeometryError("Cannot compute bounds of an empty polygon")
    lats = [v[0] for v in vertices]
    lons = [v[1] for v in vertices]
    return BoundingBox(north=max(lats), south=min(lats), east=max(lons), west=min(lons))


def validate_vertices(vertices: object) -> list[str]:
    """Return validation errors for a vertex list."""
    return vertex_errors(vertices)


def ensure_valid_vertices(vertices: object) -> None:
    """Raise InvalidGeometryError if the vertex list is invalid."""
    errors = vertex_errors(vertices)
    if errors:
        raise InvalidGeometryError("; ".join(errors))


def point_in_polygon(point: Coordinate, vertices: Sequence[Coordinate]) -> bool:
    """Ray-casting containment test."""
    x, y = point
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def simplify(vertices: Sequence[Coordinate], tolerance: float = 0.001) -> list[Coordinate]:
    """Douglas-Peucker simplification.

    Polygons with three or fewer points are returned unchanged.
    """
    points = list(vertices)
    if len(points) <= 3:
        return points
    return _douglas_peucker(points, tolerance)


def _douglas_peucker(points: list[Coordinate], epsilon: float) -> list[Coordinate]:
    if len(points) <= 2:
        return points

    start, end = points[0], points[-1]
    dmax = 0.0
    index = 0
    for i in range(1, len(points) - 1):
        d = _perpendicular_distance(points[i], start, end)
        if d > dmax:
            index = i
            dmax = d

    if dmax > epsilon:
        left = _douglas_peucker(points[: index + 1], epsilon)
        right = _douglas_peucker(points[index:], epsilon)
        return left[:-1] + right
    return [start, end]


def _perpendicular_distance(point: Coordinate, line_start: Coordinate, line_end: Coordinate) -> float:
    """Distance from point to the segment [line_start, line_end]."""
    x0, y0 = point
    x1, y1 = line_start
    x2, y2 = line_end

    dx, dy = x2 - x1, y2 - y1
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(x0 - x1, y0 - y1)

    t = ((x0 - x1) * dx + (y0 - y1) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(x0 - (x1 + t * dx), y0 - (y1 + t * dy))


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in metres."""
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def optimal_zoom(bounds: BoundingBox, width_px: int, height_px: int) -> int:
    """Largest Web-Mercator zoom level at which the bounds fit the viewport."""

    def lat_rad(lat: float) -> float:
        sin = math.sin(math.radians(lat))
        rad_x2 = math.log((1 + sin) / (1 - sin)) / 2
        return max(min(rad_x2, math.pi), -math.pi) / 2

    def zoom(map_px: int, fraction: float) -> float:
        if fraction <= 0:
            return float(MAX_ZOOM)
        return math.floor(math.log(map_px / WORLD_TILE_PX / fraction) / math.log(2))

    lat_fraction = (lat_rad(bounds.north) - lat_rad(bounds.south)) / math.pi
    lon_diff = bounds.east - bounds.west
    lon_fraction = (lon_diff + 360 if lon_diff < 0 else lon_diff) / 360

    return int(min(zoom(height_px, lat_fraction), zoom(width_px, lon_fraction), MAX_ZOOM))


def normalize_vertices(vertices: Sequence[Coordinate]) -> list[Coordinate]:
    """Round coordinates to 5 decimals (~1 m)."""
    return [(round(lat, 5), round(lon, 5)) for lat, lon in vertices]


def to_geojson(vertices: Sequence[Coordinate]) -> GeoJsonFeatureDict:
    """Polygon feature with a closed ring in [lon, lat] order."""
    ring = list(vertices)
    if ring and ring[0] != ring[-1]:
        ring.append(ring[0])
    return {
        "type": "Feature",
        "properties": {},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[lon, lat] for lat, lon in ring]],
        },
    }


def from_geojson(feature: GeoJsonFeatureDict) -> list[Coordinate]:
    """Vertices of a polygon feature, dropping the closing point."""
    try:
        ring = feature["geometry"]["coordinates"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise InvalidGeometryError(f"Not a polygon feature: {e}") from e

    vertices = [(float(lat), float(lon)) for lon, lat in ring]
    if len(vertices) > 1 and vertices[0] == vertices[-1]:
        vertices.pop()
    return vertices

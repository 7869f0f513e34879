"""Region set statistics."""

from collections import Counter
from typing import Iterable

from weather_overlay.domain.entities import Region, RegionStats


def run(regions: Iterable[Region]) -> RegionStats:
    """Count regions, resolved values, error/fallback states and metric usage."""
    regions = list(regions)
    by_metric = Counter(region.metric_id for region in regions)
    return RegionStats(
        total=len(regions),
        with_value=sum(1 for r in regions if r.value is not None),
        in_error=sum(1 for r in regions if r.error),
        by_metric=dict(by_metric),
    )

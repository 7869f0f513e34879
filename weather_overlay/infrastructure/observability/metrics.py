"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

provider_requests = Counter(
    "weather_provider_requests_total",
    "Upstream provider requests by outcome",
    ["outcome"],
)

cache_lookups = Counter(
    "weather_cache_lookups_total",
    "Weather cache lookups by result",
    ["result"],
)

synthetic_fallbacks = Counter(
    "weather_synthetic_fallbacks_total",
    "Aggregations resolved to synthetic values",
    ["metric_id"],
)

stale_results_discarded = Counter(
    "region_stale_results_discarded_total",
    "Region results dropped because a newer refresh superseded them",
)

refresh_duration_seconds = Histogram(
    "region_refresh_duration_seconds",
    "Duration of a full region refresh cycle in seconds",
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30, 60],
)

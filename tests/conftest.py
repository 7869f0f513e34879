"""Shared test fixtures."""

from datetime import date, datetime, timedelta

import pytest

from weather_overlay.domain.entities import Metric, Region
from weather_overlay.domain.ports import ClockPort
from weather_overlay.application.services.metric_catalog import default_metrics

NOW = datetime(2025, 6, 15, 12, 0, 0)


class FakeClock(ClockPort):
    """Manually advanced clock."""

    def __init__(self, start: datetime = NOW) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def format_api_date(self, ts: datetime | date) -> str:
        return ts.strftime("%Y-%m-%d")

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Create fake clock fixed at NOW."""
    return FakeClock()


@pytest.fixture
def metrics_by_id() -> dict[str, Metric]:
    """Default metrics keyed by id."""
    return {m.metric_id: m for m in default_metrics()}


@pytest.fixture
def berlin_region() -> Region:
    """Square region around central Berlin, centroid (52.52, 13.41)."""
    return Region(
        region_id="berlin",
        vertices=((52.50, 13.39), (52.50, 13.43), (52.54, 13.43), (52.54, 13.39)),
        metric_id="temperature",
        name="Berlin",
    )


def hourly_payload(start: datetime, values: list, field: str = "temperature_2m") -> dict:
    """Provider-shaped payload with hourly timestamps starting at start."""
    return {
        "latitude": 52.52,
        "longitude": 13.41,
        "timezone": "UTC",
        "hourly": {
            "time": [(start + timedelta(hours=i)).strftime("%Y-%m-%dT%H:%M") for i in range(len(values))],
            field: values,
        },
    }


@pytest.fixture
def make_payload():
    """Factory for provider payloads."""
    return hourly_payload

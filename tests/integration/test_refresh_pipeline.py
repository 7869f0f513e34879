"""End-to-end refresh through the HTTP client, cache and fetcher."""

import asyncio
import random
from datetime import timedelta

import httpx
import pytest

from weather_overlay.application.services.metric_catalog import MetricCatalog
from weather_overlay.application.services.time_window import TimeWindow
from weather_overlay.application.services.weather_fetcher import WeatherFetcher
from weather_overlay.application.use_cases.refresh_regions import RegionRefreshOrchestrator
from weather_overlay.infrastructure.cache.weather_cache import WeatherCache
from weather_overlay.infrastructure.config.settings import Settings
from weather_overlay.infrastructure.http.open_meteo_client import OpenMeteoClient
from weather_overlay.infrastructure.io.config_store import JsonConfigStore
from weather_overlay.interfaces.dashboard_session import DashboardSession

SQUARE = [(52.50, 13.39), (52.50, 13.43), (52.54, 13.43), (52.54, 13.39)]


class ArchiveStub:
    """Answers archive requests with a linear hourly ramp per requested field."""

    def __init__(self, start, hours=24 * 31, fail_first=0):
        self.start = start
        self.hours = hours
        self.fail_first = fail_first
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.requests) <= self.fail_first:
            return httpx.Response(503)
        fields = request.url.params["hourly"].split(",")
        hourly = {
            "time": [(self.start + timedelta(hours=i)).strftime("%Y-%m-%dT%H:%M") for i in range(self.hours)],
        }
        for field in fields:
            hourly[field] = [float(i % 24) for i in range(self.hours)]
        return httpx.Response(200, json={"latitude": 52.52, "longitude": 13.41, "timezone": "UTC", "hourly": hourly})


class YieldingArchiveStub(ArchiveStub):
    """Suspends before answering so concurrent requests overlap."""

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0)
        return super().__call__(request)


def build_session(clock, stub, tmp_path):
    settings = Settings(provider_base_url="https://archive.test/v1/archive")
    provider = OpenMeteoClient(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(stub)))
    cache = WeatherCache(clock, ttl_seconds=3600)
    fetcher = WeatherFetcher(provider, cache, clock, backoff_base_seconds=0, rng=random.Random(5))
    metrics = MetricCatalog()
    orchestrator = RegionRefreshOrchestrator(
        fetcher, metrics, clock, debounce_seconds=0.01, batch_pause_seconds=0
    )
    session = DashboardSession(
        TimeWindow(clock),
        metrics,
        orchestrator,
        clock,
        store=JsonConfigStore(tmp_path / "dashboard.json"),
    )
    return session, cache


@pytest.mark.asyncio
async def test_region_refreshed_from_provider(clock, tmp_path):
    """Test a new region gets the hourly mean at the current instant."""
    midnight = clock.now().replace(hour=0)
    stub = ArchiveStub(midnight - timedelta(days=15))
    session, cache = build_session(clock, stub, tmp_path)

    region = session.add_region(SQUARE)
    await session.orchestrator.wait_for_pending()

    # Instant window 12:00..13:00 averages ramp values 12 and 13
    assert region.value == 12.5
    assert region.color == "#52c41a"
    assert region.synthetic is False
    assert len(stub.requests) == 1
    assert stub.requests[0].url.params["latitude"] == "52.5200"
    assert stub.requests[0].url.params["start_date"] == "2025-05-31"
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_window_changes_reuse_cache(clock, tmp_path):
    """Test stepping through time does not hit the provider again."""
    stub = ArchiveStub(clock.now().replace(hour=0) - timedelta(days=15))
    session, _ = build_session(clock, stub, tmp_path)
    region = session.add_region(SQUARE)
    await session.orchestrator.wait_for_pending()

    session.step_forward(5)
    await session.orchestrator.wait_for_pending()

    assert region.value == 17.5
    assert region.color == "#faad14"
    assert len(stub.requests) == 1


@pytest.mark.asyncio
async def test_range_mode_mean(clock, tmp_path):
    """Test a range covering whole days averages the full ramp."""
    stub = ArchiveStub(clock.now().replace(hour=0) - timedelta(days=15))
    session, _ = build_session(clock, stub, tmp_path)
    region = session.add_region(SQUARE, metric_id="humidity")
    await session.orchestrator.wait_for_pending()

    session.set_range_mode(True)
    session.set_duration(23)
    session.jump_to(clock.now().replace(hour=11, minute=30))
    await session.orchestrator.wait_for_pending()

    # 00:00..23:00 inclusive covers ramp values 0..23 exactly once
    assert session.window.bounds().start == clock.now().replace(hour=0)
    assert region.value == 11.5
    assert region.color == "#f5222d"


@pytest.mark.asyncio
async def test_transient_errors_retried_end_to_end(clock, tmp_path):
    """Test 503 responses are retried before succeeding."""
    stub = ArchiveStub(clock.now().replace(hour=0) - timedelta(days=15), fail_first=2)
    session, _ = build_session(clock, stub, tmp_path)
    region = session.add_region(SQUARE)
    await session.orchestrator.wait_for_pending()

    assert len(stub.requests) == 3
    assert region.synthetic is False
    assert region.value == 12.5


@pytest.mark.asyncio
async def test_provider_down_falls_back(clock, tmp_path):
    """Test exhausted retries give a synthetic value and an error."""
    stub = ArchiveStub(clock.now(), fail_first=10)
    session, cache = build_session(clock, stub, tmp_path)
    region = session.add_region(SQUARE, metric_id="precipitation")
    await session.orchestrator.wait_for_pending()

    assert len(stub.requests) == 3
    assert region.synthetic is True
    assert region.error.startswith("Failed to fetch weather data")
    assert 0.0 <= region.value <= 20.0
    assert len(cache) == 0
    stats = session.stats()
    assert stats.in_error == 1


@pytest.mark.asyncio
async def test_save_and_restore_session(clock, tmp_path):
    """Test a restored session recomputes values from the provider."""
    stub = ArchiveStub(clock.now().replace(hour=0) - timedelta(days=15))
    session, _ = build_session(clock, stub, tmp_path)
    session.add_region(SQUARE, name="Mitte")
    await session.orchestrator.wait_for_pending()
    session.save()

    restored, _ = build_session(clock, stub, tmp_path)
    assert restored.restore() == 1
    region = next(iter(restored.regions.values()))
    assert region.value is None

    await restored.orchestrator.refresh_all(list(restored.regions.values()), restored.window)

    assert region.name == "Mitte"
    assert region.value == 12.5


@pytest.mark.asyncio
async def test_regions_sharing_cache_key_refresh_concurrently(clock, tmp_path):
    """Test two regions racing to fill one cache entry both get real values."""
    stub = YieldingArchiveStub(clock.now().replace(hour=0) - timedelta(days=15))
    session, cache = build_session(clock, stub, tmp_path)
    first = session.add_region(SQUARE, name="First")
    second = session.add_region(SQUARE, name="Second")
    await session.orchestrator.wait_for_pending()
    stub.requests.clear()
    cache.clear()

    report = await session.orchestrator.refresh_all([first, second], session.window)

    # Both missed the empty cache before either response arrived
    assert len(stub.requests) == 2
    assert report.applied == 2
    assert report.synthetic == 0
    assert len(cache) == 1
    for region in (first, second):
        assert region.value == 12.5
        assert region.synthetic is False
        assert region.error is None

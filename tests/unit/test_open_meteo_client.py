"""Unit tests for the Open-Meteo HTTP client."""

import httpx
import pytest

from weather_overlay.domain.errors import (
    ProviderRequestError,
    ResponseValidationError,
    TransientFetchError,
)
from weather_overlay.infrastructure.config.settings import Settings
from weather_overlay.infrastructure.http.open_meteo_client import (
    OpenMeteoClient,
    build_params,
    describe_status,
)

BASE_URL = "https://archive.test/v1/archive"


@pytest.fixture
def settings():
    """Create settings pointing at a test host."""
    return Settings(provider_base_url=BASE_URL, provider_timezone="UTC", request_timeout_seconds=2)


def client_for(settings, handler):
    """Client whose requests are answered by handler."""
    return OpenMeteoClient(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_build_params():
    """Test query parameters sent to the archive endpoint."""
    params = build_params(52.52, 13.405, ["temperature_2m", "precipitation"], "2025-05-31", "2025-06-30", "UTC")

    assert params == {
        "latitude": "52.5200",
        "longitude": "13.4050",
        "start_date": "2025-05-31",
        "end_date": "2025-06-30",
        "hourly": "temperature_2m,precipitation",
        "timezone": "UTC",
    }


@pytest.mark.parametrize(
    "status,expected",
    [(400, "Invalid request parameters"), (429, "Rate limit exceeded"), (503, "Service temporarily unavailable"), (418, "API error (418)")],
)
def test_describe_status(status, expected):
    """Test HTTP status descriptions."""
    assert describe_status(status) == expected


@pytest.mark.asyncio
async def test_fetch_hourly_success(settings):
    """Test a 200 response returns the decoded payload."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(200, json={"hourly": {"time": ["2025-06-15T00:00"], "temperature_2m": [1.0]}})

    async with client_for(settings, handler) as client:
        payload = await client.fetch_hourly(52.52, 13.41, ["temperature_2m"], "2025-05-31", "2025-06-30")

    assert payload["hourly"]["temperature_2m"] == [1.0]
    assert seen["url"].host == "archive.test"
    assert seen["url"].params["latitude"] == "52.5200"
    assert seen["url"].params["hourly"] == "temperature_2m"
    assert seen["url"].params["start_date"] == "2025-05-31"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [429, 500, 502, 503])
async def test_transient_statuses(settings, status):
    """Test rate limiting and server errors are transient."""
    client = client_for(settings, lambda request: httpx.Response(status))

    with pytest.raises(TransientFetchError, match=f"HTTP {status}"):
        await client.fetch_hourly(0.0, 0.0, ["temperature_2m"], "2025-05-31", "2025-06-30")


@pytest.mark.asyncio
@pytest.mark.parametrize("status,message", [(400, "Invalid request parameters"), (404, "API endpoint not found")])
async def test_client_errors_not_transient(settings, status, message):
    """Test other 4xx statuses are permanent rejections."""
    client = client_for(settings, lambda request: httpx.Response(status))

    with pytest.raises(ProviderRequestError, match=message):
        await client.fetch_hourly(0.0, 0.0, ["temperature_2m"], "2025-05-31", "2025-06-30")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc,message",
    [
        (httpx.ReadTimeout("read timed out"), "Request timeout"),
        (httpx.ConnectError("connection refused"), "Network error"),
    ],
)
async def test_transport_failures_are_transient(settings, exc, message):
    """Test timeouts and network errors are transient."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise exc

    client = client_for(settings, handler)

    with pytest.raises(TransientFetchError, match=message):
        await client.fetch_hourly(0.0, 0.0, ["temperature_2m"], "2025-05-31", "2025-06-30")


@pytest.mark.asyncio
async def test_invalid_json(settings):
    """Test a non-JSON body is a validation error."""
    client = client_for(settings, lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(ResponseValidationError, match="not JSON"):
        await client.fetch_hourly(0.0, 0.0, ["temperature_2m"], "2025-05-31", "2025-06-30")


@pytest.mark.asyncio
async def test_injected_client_not_closed(settings):
    """Test only an owned HTTP client is closed."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    client = OpenMeteoClient(settings, client=http_client)

    await client.aclose()

    assert not http_client.is_closed
    await http_client.aclose()

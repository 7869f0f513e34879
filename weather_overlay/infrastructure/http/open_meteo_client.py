"""Open-Meteo archive API client."""

import httpx
import structlog

from weather_overlay.domain.errors import (
    ProviderRequestError,
    ResponseValidationError,
    TransientFetchError,
)
from weather_overlay.domain.ports import WeatherProviderPort
from weather_overlay.domain.types import ProviderPayloadDict
from weather_overlay.infrastructure.config.settings import Settings
from weather_overlay.infrastructure.observability.metrics import provider_requests

logger = structlog.get_logger()

_STATUS_MESSAGES = {
    400: "Invalid request parameters",
    401: "Unauthorized access",
    403: "Access forbidden",
    404: "API endpoint not found",
    429: "Rate limit exceeded",
    500: "Server error",
    503: "Service temporarily unavailable",
}


def describe_status(status_code: int) -> str:
    """Short description of an HTTP error status."""
    return _STATUS_MESSAGES.get(status_code, f"API error ({status_code})")


def build_params(
    latitude: float,
    longitude: float,
    fields: list[str],
    start_date: str,
    end_date: str,
    timezone: str,
) -> dict[str, str]:
    """Query parameters for the archive endpoint."""
    return {
        "latitude": f"{latitude:.4f}",
        "longitude": f"{longitude:.4f}",
        "start_date": start_date,
        "end_date": end_date,
        "hourly": ",".join(fields),
        "timezone": timezone,
    }


class OpenMeteoClient(WeatherProviderPort):
    """Single-attempt HTTP client; retries are driven by the caller."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        """Initialize HTTP client."""
        self.base_url = settings.provider_base_url
        self.timezone = settings.provider_timezone
        self.timeout = settings.request_timeout_seconds
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.timeout,
            headers={"Accept": "application/json"},
        )

    async def fetch_hourly(
        self,
        latitude: float,
        longitude: float,
        fields: list[str],
        start_date: str,
        end_date: str,
    ) -> ProviderPayloadDict:
        """Fetch the hourly payload, classifying failures as transient or not."""
        params = build_params(latitude, longitude, fields, start_date, end_date, self.timezone)
        logger.debug("provider_request", url=self.base_url, **params)

        try:
            response = await self.client.get(self.base_url, params=params, timeout=self.timeout)
        except httpx.TimeoutException as e:
            provider_requests.labels(outcome="timeout").inc()
            raise TransientFetchError(f"Request timeout: {e}") from e
        except httpx.TransportError as e:
            provider_requests.labels(outcome="network_error").inc()
            raise TransientFetchError(f"Network error: {e}") from e

        status = response.status_code
        if status == 429 or status >= 500:
            provider_requests.labels(outcome="transient_status").inc()
            raise TransientFetchError(f"{describe_status(status)} (HTTP {status})")
        if status >= 400:
            provider_requests.labels(outcome="rejected").inc()
            raise ProviderRequestError(f"{describe_status(status)} (HTTP {status})")

        try:
            payload = response.json()
        except ValueError as e:
            provider_requests.labels(outcome="invalid_body").inc()
            raise ResponseValidationError(f"Response is not JSON: {e}") from e

        provider_requests.labels(outcome="success").inc()
        logger.debug("provider_response", status=status, latitude=params["latitude"], longitude=params["longitude"])
        return payload

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "OpenMeteoClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

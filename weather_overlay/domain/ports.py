"""Ports (interfaces) for infrastructure adapters."""

from abc import ABC, abstractmethod
from datetime import date

from weather_overlay.domain.entities import CacheKey, Metric, RawSeries, Region
from weather_overlay.domain.types import JsonValue, ProviderPayloadDict, Timestamp


class ClockPort(ABC):
    """Port for time operations."""

    @abstractmethod
    def now(self) -> Timestamp:
        """Get current timestamp (naive UTC)."""

    @abstractmethod
    def format_api_date(self, ts: Timestamp | date) -> str:
        """Format timestamp as provider date string."""


class WeatherProviderPort(ABC):
    """Port for the upstream hourly weather provider."""

    @abstractmethod
    async def fetch_hourly(
        self,
        latitude: float,
        longitude: float,
        fields: list[str],
        start_date: str,
        end_date: str,
    ) -> ProviderPayloadDict:
        """Fetch the raw hourly payload for a location and date span."""


class WeatherCachePort(ABC):
    """Port for the shared raw-series cache."""

    @abstractmethod
    def get(self, key: CacheKey) -> RawSeries | None:
        """Return the cached series if still fresh, else None."""

    @abstractmethod
    def put(self, key: CacheKey, series: RawSeries) -> None:
        """Store series, replacing any prior entry."""


class ConfigStorePort(ABC):
    """Port for persisting region and metric definitions."""

    @abstractmethod
    def save(
        self,
        regions: list[Region],
        metrics: list[Metric],
        view: dict[str, JsonValue] | None = None,
    ) -> None:
        """Persist a configuration snapshot."""

    @abstractmethod
    def load(self) -> tuple[list[Region], list[Metric], dict[str, JsonValue]]:
        """Load the last snapshot."""

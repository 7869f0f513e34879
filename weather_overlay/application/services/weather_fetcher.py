"""Fetch, cache and aggregate weather series for a region."""

import random
from datetime import timedelta

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from weather_overlay.application.dto.provider import ProviderResponse
from weather_overlay.application.services.aggregation import synthetic_value, window_mean
from weather_overlay.application.services.geometry import centroid
from weather_overlay.domain.entities import (
    AggregateResult,
    CacheKey,
    Metric,
    RawSeries,
    Region,
    WindowBounds,
)
from weather_overlay.domain.enums import FetchState
from weather_overlay.domain.errors import FetchError, TransientFetchError
from weather_overlay.domain.ports import ClockPort, WeatherCachePort, WeatherProviderPort
from weather_overlay.infrastructure.observability.metrics import synthetic_fallbacks

logger = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE_SECONDS = 1.0
DEFAULT_REQUEST_SPAN_DAYS = 15

_TRANSITIONS: dict[FetchState, frozenset[FetchState]] = {
    FetchState.PENDING: frozenset(
        {FetchState.RETRYING, FetchState.SUCCEEDED, FetchState.FALLBACK_SYNTHESIZED}
    ),
    FetchState.RETRYING: frozenset(
        {FetchState.RETRYING, FetchState.SUCCEEDED, FetchState.FALLBACK_SYNTHESIZED}
    ),
    # Data fetched but nothing usable inside the window
    FetchState.SUCCEEDED: frozenset({FetchState.FALLBACK_SYNTHESIZED}),
    FetchState.FALLBACK_SYNTHESIZED: frozenset(),
}


class FetchAttempt:
    """State machine for one region's fetch: Pending -> Retrying -> Succeeded | FallbackSynthesized."""

    def __init__(self, region_id: str, metric_id: str) -> None:
        """Initialize in PENDING."""
        self.region_id = region_id
        self.metric_id = metric_id
        self.state = FetchState.PENDING
        self.retries = 0

    def transition(self, new_state: FetchState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal fetch transition {self.state.value} -> {new_state.value}")
        if new_state is FetchState.RETRYING:
            self.retries += 1
        self.state = new_state


class WeatherFetcher:
    """Turns (region, metric, window) into a scalar, never raising on fetch failure."""

    def __init__(
        self,
        provider: WeatherProviderPort,
        cache: WeatherCachePort,
        clock: ClockPort,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS,
        request_span_days: int = DEFAULT_REQUEST_SPAN_DAYS,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize fetcher."""
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.provider = provider
        self.cache = cache
        self.clock = clock
        self.max_attempts = max_attempts
        self.backoff_base_seconds = backoff_base_seconds
        self.request_span_days = request_span_days
        self.rng = rng or random.Random()

    async def aggregate(self, region: Region, metric: Metric, window: WindowBounds) -> AggregateResult:
        """Mean of the metric over the window at the region centroid.

        Falls back to a synthetic value on any fetch or validation failure,
        or when the window holds no usable values.
        """
        attempt = FetchAttempt(region.region_id, metric.metric_id)
        key = CacheKey.from_centroid(centroid(region.vertices), metric.metric_id)

        series = self.cache.get(key)
        cache_hit = series is not None
        if series is None:
            try:
                series = await self._fetch_series(key, metric, attempt)
            except FetchError as e:
                return self._fallback(attempt, region, metric, f"Failed to fetch weather data: {e}")
            except Exception as e:
                logger.error(
                    "unexpected_fetch_error",
                    region_id=region.region_id,
                    metric_id=metric.metric_id,
                    exc_info=True,
                )
                return self._fallback(attempt, region, metric, f"Unexpected error: {e}")
            self.cache.put(key, series)
        attempt.transition(FetchState.SUCCEEDED)

        value = window_mean(series, window)
        if value is None:
            return self._fallback(
                attempt,
                region,
                metric,
                "No data in selected time window",
                cache_hit=cache_hit,
            )

        return AggregateResult(
            value=value,
            synthetic=False,
            state=attempt.state,
            cache_hit=cache_hit,
        )

    async def _fetch_series(self, key: CacheKey, metric: Metric, attempt: FetchAttempt) -> RawSeries:
        """Fetch and validate the fixed +/- span around today, retrying transient errors."""
        today = self.clock.now().date()
        span = timedelta(days=self.request_span_days)
        start_date = self.clock.format_api_date(today - span)
        end_date = self.clock.format_api_date(today + span)

        def before_sleep(retry_state: RetryCallState) -> None:
            attempt.transition(FetchState.RETRYING)
            logger.warning(
                "provider_fetch_retrying",
                region_id=attempt.region_id,
                metric_id=attempt.metric_id,
                attempt=retry_state.attempt_number,
                error=str(retry_state.outcome.exception()),
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base_seconds),
            retry=retry_if_exception_type(TransientFetchError),
            before_sleep=before_sleep,
            reraise=True,
        )
        async for retry_attempt in retrying:
            with retry_attempt:
                payload = await self.provider.fetch_hourly(
                    key.latitude,
                    key.longitude,
                    [metric.provider_field],
                    start_date,
                    end_date,
                )

        series = ProviderResponse.parse(payload).series_for(metric.provider_field)
        logger.info(
            "provider_series_fetched",
            metric_id=metric.metric_id,
            latitude=key.latitude,
            longitude=key.longitude,
            points=len(series.timestamps),
            retries=attempt.retries,
        )
        return series

    def _fallback(
        self,
        attempt: FetchAttempt,
        region: Region,
        metric: Metric,
        error: str,
        cache_hit: bool = False,
    ) -> AggregateResult:
        attempt.transition(FetchState.FALLBACK_SYNTHESIZED)
        value = synthetic_value(metric, self.rng)
        synthetic_fallbacks.labels(metric_id=metric.metric_id).inc()
        logger.warning(
            "synthetic_fallback",
            region_id=region.region_id,
            metric_id=metric.metric_id,
            value=value,
            error=error,
        )
        return AggregateResult(
            value=value,
            synthetic=True,
            state=attempt.state,
            error=error,
            cache_hit=cache_hit,
        )

"""Main entrypoint."""

import asyncio
import signal

import structlog

from weather_overlay.application.services.metric_catalog import MetricCatalog
from weather_overlay.application.services.time_window import TimeWindow
from weather_overlay.application.services.weather_fetcher import WeatherFetcher
from weather_overlay.application.use_cases.refresh_regions import RegionRefreshOrchestrator
from weather_overlay.infrastructure.cache.weather_cache import WeatherCache
from weather_overlay.infrastructure.config.settings import Settings
from weather_overlay.infrastructure.http.open_meteo_client import OpenMeteoClient
from weather_overlay.infrastructure.io.config_store import JsonConfigStore
from weather_overlay.infrastructure.observability.logging import configure_logging
from weather_overlay.infrastructure.runtime.clock import SystemClock
from weather_overlay.infrastructure.runtime.health import start_metrics_server
from weather_overlay.interfaces.dashboard_session import DashboardSession

logger = structlog.get_logger()

shutdown_event = asyncio.Event()


def signal_handler() -> None:
    """Handle shutdown signal."""
    logger.info("shutdown_signal_received")
    shutdown_event.set()


def build_session(settings: Settings, provider: OpenMeteoClient) -> DashboardSession:
    """Wire the engine from settings."""
    clock = SystemClock()
    cache = WeatherCache(
        clock,
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )
    fetcher = WeatherFetcher(
        provider,
        cache,
        clock,
        max_attempts=settings.fetch_max_attempts,
        backoff_base_seconds=settings.fetch_backoff_base_seconds,
        request_span_days=settings.horizon_days,
    )
    metrics = MetricCatalog()
    orchestrator = RegionRefreshOrchestrator(
        fetcher,
        metrics,
        clock,
        debounce_seconds=settings.refresh_debounce_seconds,
        batch_size=settings.refresh_batch_size,
        batch_pause_seconds=settings.refresh_batch_pause_seconds,
    )
    return DashboardSession(
        TimeWindow(clock, horizon_days=settings.horizon_days),
        metrics,
        orchestrator,
        clock,
        store=JsonConfigStore(settings.config_path),
        playback_interval_seconds=settings.playback_interval_seconds,
    )


async def main_loop() -> None:
    """Main event loop: periodic refresh of the persisted regions."""
    settings = Settings()
    configure_logging(settings.log_level)
    logger.info("engine_starting", provider=settings.provider_base_url, config_path=settings.config_path)

    start_metrics_server(settings)

    async with OpenMeteoClient(settings) as provider:
        session = build_session(settings, provider)
        region_count = session.restore()
        logger.info("engine_ready", regions=region_count, metrics=len(session.metrics))

        while not shutdown_event.is_set():
            try:
                if session.regions:
                    await session.orchestrator.refresh_all(list(session.regions.values()), session.window)
                    stats = session.stats()
                    logger.info(
                        "region_stats",
                        total=stats.total,
                        with_value=stats.with_value,
                        in_error=stats.in_error,
                        by_metric=stats.by_metric,
                    )
            except Exception as e:
                logger.error("main_loop_error", exc_info=True, error=str(e))

            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=settings.periodic_refresh_seconds)
            except asyncio.TimeoutError:
                session.window.reset_to_now()

        session.save()

    logger.info("engine_shutting_down")


def main() -> None:
    """Entrypoint."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, signal_handler)

    try:
        loop.run_until_complete(main_loop())
    except KeyboardInterrupt:
        pass
    finally:
        loop.close()


if __name__ == "__main__":
    main()

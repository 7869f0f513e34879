"""Metrics server."""

import structlog
from prometheus_client import start_http_server

from weather_overlay.infrastructure.config.settings import Settings

logger = structlog.get_logger()


def start_metrics_server(settings: Settings) -> bool:
    """Start Prometheus metrics HTTP server if enabled."""
    if not settings.metrics_enabled:
        logger.info("metrics_server_disabled")
        return False
    start_http_server(settings.prometheus_port)
    logger.info("metrics_server_started", port=settings.prometheus_port)
    return True

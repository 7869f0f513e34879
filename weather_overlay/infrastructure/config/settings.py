"""Application settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Upstream provider
    provider_base_url: str = "https://archive-api.open-meteo.com/v1/archive"
    provider_timezone: str = "UTC"
    request_timeout_seconds: float = 10.0
    fetch_max_attempts: int = 3
    fetch_backoff_base_seconds: float = 1.0

    # Cache
    cache_ttl_seconds: float = 3600.0
    cache_max_entries: int | None = None

    # Refresh orchestration
    refresh_debounce_seconds: float = 0.5
    refresh_batch_size: int = 5
    refresh_batch_pause_seconds: float = 0.1
    periodic_refresh_seconds: float = 300.0

    # Timeline
    horizon_days: int = 15
    playback_interval_seconds: float = 1.0

    # Persistence and observability
    config_path: str = "dashboard_config.json"
    prometheus_port: int = 9300
    metrics_enabled: bool = True
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="",
        extra="ignore",
    )

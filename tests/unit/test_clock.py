"""Unit tests for clock."""

from datetime import date, datetime

from weather_overlay.infrastructure.runtime.clock import SystemClock


def test_now():
    """Test getting current time."""
    clock = SystemClock()
    now = clock.now()

    assert isinstance(now, datetime)
    assert now.tzinfo is None


def test_format_api_date():
    """Test formatting provider date."""
    clock = SystemClock()
    dt = datetime(2025, 1, 5, 10, 30, 0)

    assert clock.format_api_date(dt) == "2025-01-05"


def test_format_api_date_from_date():
    """Test formatting a plain date."""
    clock = SystemClock()

    assert clock.format_api_date(date(2024, 12, 31)) == "2024-12-31"

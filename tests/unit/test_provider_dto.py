"""Unit tests for provider response parsing."""

from datetime import datetime

import pytest

from weather_overlay.application.dto.provider import ProviderResponse
from weather_overlay.domain.errors import ResponseValidationError


@pytest.fixture
def payload():
    """Create a minimal archive response."""
    return {
        "latitude": 52.52,
        "longitude": 13.41,
        "timezone": "UTC",
        "generationtime_ms": 0.4,
        "hourly_units": {"time": "iso8601", "temperature_2m": "°C"},
        "hourly": {
            "time": ["2025-06-15T00:00", "2025-06-15T01:00", "2025-06-15T02:00"],
            "temperature_2m": [14.2, None, 13.1],
        },
    }


def test_parse_valid_payload(payload):
    """Test a valid payload yields an aligned series."""
    series = ProviderResponse.parse(payload).series_for("temperature_2m")

    assert series.timestamps[0] == datetime(2025, 6, 15, 0, 0)
    assert series.timestamps[-1] == datetime(2025, 6, 15, 2, 0)
    assert series.values == (14.2, None, 13.1)


def test_integer_values_coerced(payload):
    """Test integer samples become floats."""
    payload["hourly"]["temperature_2m"] = [14, 15, 16]
    series = ProviderResponse.parse(payload).series_for("temperature_2m")
    assert series.values == (14.0, 15.0, 16.0)


def test_offset_timestamps_normalized_to_utc(payload):
    """Test timezone-aware timestamps become naive UTC."""
    payload["hourly"]["time"] = ["2025-06-15T02:00+02:00", "2025-06-15T01:00Z", "2025-06-15T02:00Z"]
    series = ProviderResponse.parse(payload).series_for("temperature_2m")
    assert series.timestamps[0] == datetime(2025, 6, 15, 0, 0)
    assert series.timestamps[1] == datetime(2025, 6, 15, 1, 0)


@pytest.mark.parametrize("raw", [None, [], "text", 42])
def test_non_object_payload(raw):
    """Test non-object payloads are rejected."""
    with pytest.raises(ResponseValidationError, match="non-object"):
        ProviderResponse.parse(raw)


def test_missing_hourly_block(payload):
    """Test payloads without hourly data are rejected."""
    del payload["hourly"]
    with pytest.raises(ResponseValidationError, match="Invalid hourly data"):
        ProviderResponse.parse(payload)


def test_empty_time_array(payload):
    """Test an empty time array is rejected."""
    payload["hourly"] = {"time": [], "temperature_2m": []}
    with pytest.raises(ResponseValidationError):
        ProviderResponse.parse(payload)


def test_missing_field(payload):
    """Test asking for an absent field raises."""
    with pytest.raises(ResponseValidationError, match="Missing hourly field: precipitation"):
        ProviderResponse.parse(payload).series_for("precipitation")


def test_misaligned_arrays(payload):
    """Test arrays of different length are rejected."""
    payload["hourly"]["temperature_2m"] = [1.0, 2.0]
    with pytest.raises(ResponseValidationError, match="Misaligned"):
        ProviderResponse.parse(payload).series_for("temperature_2m")


def test_non_numeric_values(payload):
    """Test non-numeric samples are rejected."""
    payload["hourly"]["temperature_2m"] = [1.0, "warm", 2.0]
    with pytest.raises(ResponseValidationError, match="Invalid values"):
        ProviderResponse.parse(payload).series_for("temperature_2m")


def test_bad_timestamp(payload):
    """Test unparseable timestamps are rejected."""
    payload["hourly"]["time"][1] = "yesterday"
    with pytest.raises(ResponseValidationError, match="Invalid timestamp"):
        ProviderResponse.parse(payload).series_for("temperature_2m")

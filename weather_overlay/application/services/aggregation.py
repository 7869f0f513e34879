"""Temporal aggregation of raw hourly series."""

import random
from decimal import ROUND_HALF_UP, Decimal

import numpy as np
import pandas as pd

from weather_overlay.domain.entities import Metric, RawSeries, WindowBounds
from weather_overlay.domain.types import Timestamp

# Plausible ranges for synthetic values, keyed by metric id or provider field
SYNTHETIC_RANGES: dict[str, tuple[float, float]] = {
    "temperature": (-10.0, 35.0),
    "temperature_2m": (-10.0, 35.0),
    "humidity": (30.0, 90.0),
    "relativehumidity_2m": (30.0, 90.0),
    "precipitation": (0.0, 20.0),
}
DEFAULT_SYNTHETIC_RANGE = (0.0, 100.0)


def round_one_decimal(value: float) -> float:
    """Round half away from zero to one decimal place."""
    return float(Decimal(repr(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def to_frame(series: RawSeries) -> pd.Series:
    """Raw series as a float Series indexed by timestamp (None becomes NaN)."""
    values = np.array(
        [np.nan if v is None else v for v in series.values],
        dtype=float,
    )
    return pd.Series(values, index=pd.DatetimeIndex(series.timestamps))


def select_window(series: pd.Series, start: Timestamp, end: Timestamp) -> pd.Series:
    """Values with start <= timestamp <= end, NaN dropped."""
    mask = (series.index >= pd.Timestamp(start)) & (series.index <= pd.Timestamp(end))
    return series[mask].dropna()


def window_mean(series: RawSeries, window: WindowBounds) -> float | None:
    """Mean over the window rounded once to one decimal, or None if empty."""
    if len(series.timestamps) != len(series.values):
        return None
    selected = select_window(to_frame(series), window.start, window.end)
    if selected.empty:
        return None
    return round_one_decimal(float(selected.mean()))


def synthetic_range(metric: Metric) -> tuple[float, float]:
    """Synthetic value range for a metric."""
    return SYNTHETIC_RANGES.get(
        metric.metric_id,
        SYNTHETIC_RANGES.get(metric.provider_field, DEFAULT_SYNTHETIC_RANGE),
    )


def synthetic_value(metric: Metric, rng: random.Random | None = None) -> float:
    """Uniform pseudo-random value in the metric's plausible range."""
    low, high = synthetic_range(metric)
    rng = rng or random
    return round_one_decimal(rng.uniform(low, high))

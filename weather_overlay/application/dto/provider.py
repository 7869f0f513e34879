"""Provider response DTOs."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from weather_overlay.domain.entities import RawSeries
from weather_overlay.domain.errors import ResponseValidationError

_VALUES = TypeAdapter(list[float | None])


class HourlyBlock(BaseModel):
    """Hourly block: a time array plus one array per requested field."""

    model_config = ConfigDict(extra="allow")

    time: list[str] = Field(min_length=1)


class ProviderResponse(BaseModel):
    """Archive API response (only the fields the engine reads)."""

    model_config = ConfigDict(extra="ignore")

    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None
    hourly: HourlyBlock

    @classmethod
    def parse(cls, payload: object) -> "ProviderResponse":
        """Validate raw payload shape."""
        if not isinstance(payload, dict):
            raise ResponseValidationError("Empty or non-object response")
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise ResponseValidationError(f"Invalid hourly data: {e.errors()[0]['msg']}") from e

    def series_for(self, field: str) -> RawSeries:
        """Index-aligned series for one field."""
        extra = self.hourly.model_extra or {}
        if field not in extra:
            raise ResponseValidationError(f"Missing hourly field: {field}")
        try:
            values = _VALUES.validate_python(extra[field])
        except ValidationError as e:
            raise ResponseValidationError(f"Invalid values for {field}") from e
        if len(values) != len(self.hourly.time):
            raise ResponseValidationError(
                f"Misaligned hourly arrays: {len(self.hourly.time)} timestamps, {len(values)} values",
            )
        return RawSeries(
            timestamps=tuple(_parse_timestamp(ts) for ts in self.hourly.time),
            values=tuple(values),
        )


def _parse_timestamp(raw: str) -> datetime:
    try:
        ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as e:
        raise ResponseValidationError(f"Invalid timestamp: {raw!r}") from e
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts

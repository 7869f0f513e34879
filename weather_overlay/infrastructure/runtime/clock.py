"""Clock implementation."""

from datetime import date, datetime, timezone

from weather_overlay.domain.ports import ClockPort
from weather_overlay.domain.types import Timestamp


class SystemClock(ClockPort):
    """System clock implementation."""

    def now(self) -> Timestamp:
        """Get current timestamp (naive UTC)."""
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def format_api_date(self, ts: Timestamp | date) -> str:
        """Format timestamp as provider date string."""
        return ts.strftime("%Y-%m-%d")

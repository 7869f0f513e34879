"""In-memory TTL cache for raw provider series."""

import threading
from collections import OrderedDict
from datetime import timedelta

import structlog

from weather_overlay.domain.entities import CacheEntry, CacheKey, RawSeries
from weather_overlay.domain.ports import ClockPort, WeatherCachePort
from weather_overlay.infrastructure.observability.metrics import cache_lookups

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 3600.0


class WeatherCache(WeatherCachePort):
    """Age-expiring cache keyed by rounded centroid and metric.

    Entries are immutable and replaced whole under a lock, so concurrent
    fetches for the same key resolve as last-write-wins. An optional
    ``max_entries`` adds LRU eviction on top of the age-based expiry.
    """

    def __init__(
        self,
        clock: ClockPort,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int | None = None,
    ) -> None:
        """Initialize cache."""
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.clock = clock
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_entries = max_entries
        self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> RawSeries | None:
        """Return the cached series if fresh; evict and return None if stale."""
        now = self.clock.now()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                cache_lookups.labels(result="miss").inc()
                return None
            if now - entry.fetched_at > self.ttl:
                del self._entries[key]
                cache_lookups.labels(result="expired").inc()
                logger.debug("cache_entry_expired", key=_key_repr(key))
                return None
            self._entries.move_to_end(key)
            cache_lookups.labels(result="hit").inc()
            return entry.series

    def put(self, key: CacheKey, series: RawSeries) -> None:
        """Store series stamped with the current time."""
        entry = CacheEntry(series=series, fetched_at=self.clock.now())
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("cache_entry_evicted", key=_key_repr(evicted))

    def purge_expired(self) -> int:
        """Drop every stale entry; return how many were removed."""
        now = self.clock.now()
        with self._lock:
            stale = [k for k, e in self._entries.items() if now - e.fetched_at > self.ttl]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


def _key_repr(key: CacheKey) -> str:
    return f"{key.latitude:.4f}_{key.longitude:.4f}_{key.metric_id}"

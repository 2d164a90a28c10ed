import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from aiocache import SimpleMemoryCache

from features.tides.models.tide_types import CachedTideSeries

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class TideSeriesCache:
    """Per-station tide series cache with staleness tracking.

    Entries are stored without a backend TTL so an expired series can still be
    served as stale when the upstream is down; freshness is judged against the
    injected clock. Writers store a new frozen series under the station key,
    so readers always see either the old entry or the new one.
    """

    def __init__(
        self,
        ttl: timedelta,
        clock: Optional[Clock] = None,
        namespace: str = "tide_series"
    ):
        self.ttl = ttl
        self.clock = clock or utc_now
        self._cache = SimpleMemoryCache(namespace=namespace)

    async def get(self, station_id: str) -> Optional[CachedTideSeries]:
        return await self._cache.get(station_id)

    async def put(self, series: CachedTideSeries) -> None:
        await self._cache.set(series.station_id, series)
        logger.debug(f"Cached tide series for station {series.station_id}")

    def is_fresh(self, series: CachedTideSeries) -> bool:
        return self.clock() - series.fetched_at < self.ttl

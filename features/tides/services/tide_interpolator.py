import asyncio
import logging
import math
import aiohttp
from datetime import datetime, timedelta, timezone
from typing import Awaitable, List, Optional, Protocol, Sequence, Tuple, TypeVar

from features.common.exceptions.engine_exceptions import (
    DataUnavailableError,
    UpstreamError,
    UpstreamTimeoutError
)
from features.tides.models.tide_types import (
    CachedTideSeries,
    DayTides,
    HourlyTide,
    TideDirection,
    TidePrediction,
    TideState,
    TideStateReading
)
from features.tides.services.tide_cache import Clock, TideSeriesCache, utc_now
from core.config import settings

logger = logging.getLogger(__name__)

# Fixed domain rule, not derived from the local tidal range
SLACK_WINDOW = timedelta(minutes=15)

T = TypeVar("T")

def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

class TidePredictionFetcher(Protocol):
    async def fetch(
        self,
        station_id: str,
        begin_date: datetime,
        range_hours: int
    ) -> List[TidePrediction]:
        ...

def _bracket(
    predictions: Sequence[TidePrediction],
    query_time: datetime
) -> Tuple[TidePrediction, TidePrediction]:
    """Pair with before.time <= query_time < after.time.

    Outside the series the nearest two predictions are used instead, which
    turns the result into a clamped extrapolation at the boundaries.
    """
    if query_time < predictions[0].time:
        return predictions[0], predictions[1]
    for before, after in zip(predictions, predictions[1:]):
        if before.time <= query_time < after.time:
            return before, after
    return predictions[-2], predictions[-1]

def interpolate(predictions: Sequence[TidePrediction], query_time: datetime) -> TideState:
    """Reduce hi/lo events to the water level and movement at query_time.

    Height is linear between the bracketing extrema with progress clamped to
    [0, 1], so it never overshoots either endpoint. Within 15 minutes of
    either bracketing extremum the tide is reported as slack.
    """
    if len(predictions) < 2:
        raise ValueError("interpolation needs at least two tide predictions")

    query_time = as_utc(query_time)
    before, after = _bracket(predictions, query_time)

    total = (after.time - before.time).total_seconds()
    elapsed = (query_time - before.time).total_seconds()
    progress = min(1.0, max(0.0, elapsed / total)) if total > 0 else 0.0
    height = before.height_ft + (after.height_ft - before.height_ft) * progress

    near_before = abs(query_time - before.time) < SLACK_WINDOW
    near_after = abs(after.time - query_time) < SLACK_WINDOW
    if near_before or near_after:
        direction = TideDirection.SLACK
    elif after.height_ft > before.height_ft:
        direction = TideDirection.RISING
    else:
        direction = TideDirection.FALLING

    return TideState(height_ft=height, direction=direction, as_of=query_time)

def next_tide_event(
    predictions: Sequence[TidePrediction],
    after: datetime
) -> Optional[TidePrediction]:
    after = as_utc(after)
    return next((p for p in predictions if p.time > after), None)

class TideInterpolator:
    """Current tide state per station, backed by a TTL cache of predictions.

    One instance is built at startup and owns its cache; fetcher and clock are
    injected. Upstream failures and timeouts fall back to the last good series
    marked stale; without any cached series they surface as
    DataUnavailableError.
    """

    def __init__(
        self,
        fetcher: TidePredictionFetcher,
        clock: Optional[Clock] = None,
        cache: Optional[TideSeriesCache] = None,
        fetch_timeout: Optional[float] = None,
        include_hourly: Optional[bool] = None
    ):
        self.fetcher = fetcher
        self.clock = clock or utc_now
        self.cache = cache or TideSeriesCache(
            ttl=timedelta(seconds=settings.tide_cache_ttl_seconds),
            clock=self.clock
        )
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else settings.request["timeout"]
        if include_hourly is None:
            include_hourly = settings.tide_include_hourly
        # Hourly heights are optional; plain hi/lo fetchers are enough
        self.include_hourly = include_hourly and hasattr(fetcher, "fetch_hourly")

    def _fetch_window(self, window_hours: int) -> Tuple[datetime, int]:
        """Begin at midnight UTC of the previous day and over-request.

        Starting a day back guarantees an extremum before "now"; the range
        runs past now + window_hours by the configured padding, never less
        than the standard fetch range.
        """
        now = self.clock()
        begin = (now - timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
        needed = (now + timedelta(hours=window_hours) - begin).total_seconds() / 3600
        range_hours = max(
            settings.tide_fetch_range_hours,
            math.ceil(needed) + settings.tide_fetch_padding_hours
        )
        return begin, range_hours

    async def _call_upstream(
        self,
        station_id: str,
        call: Awaitable[T],
        timeout: Optional[float]
    ) -> T:
        timeout = timeout if timeout is not None else self.fetch_timeout
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            raise UpstreamTimeoutError("tide_predictions", f"station {station_id} timed out after {timeout}s")
        except aiohttp.ClientError as e:
            raise UpstreamError("tide_predictions", f"station {station_id}: {str(e)}")

    async def get_predictions(
        self,
        station_id: str,
        window_hours: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> List[TidePrediction]:
        """Fetch hi/lo events covering at least [now, now + window_hours]."""
        window_hours = window_hours if window_hours is not None else settings.tide_fetch_range_hours
        begin, range_hours = self._fetch_window(window_hours)
        predictions = await self._call_upstream(
            station_id,
            self.fetcher.fetch(station_id, begin, range_hours),
            timeout
        )
        return sorted(predictions, key=lambda p: p.time)

    async def _get_hourly(self, station_id: str, timeout: Optional[float]) -> List[HourlyTide]:
        begin, range_hours = self._fetch_window(settings.tide_fetch_range_hours)
        return await self._call_upstream(
            station_id,
            self.fetcher.fetch_hourly(station_id, begin, range_hours),
            timeout
        )

    async def _fetch_series(self, station_id: str, timeout: Optional[float]) -> CachedTideSeries:
        if self.include_hourly:
            predictions, hourly = await asyncio.gather(
                self.get_predictions(station_id, timeout=timeout),
                self._get_hourly(station_id, timeout),
                return_exceptions=True
            )
            if isinstance(predictions, BaseException):
                raise predictions
            if isinstance(hourly, UpstreamError):
                # The hourly curve is display data; hi/lo events still interpolate
                logger.warning(f"Hourly tide heights unavailable for station {station_id}: {str(hourly)}")
                hourly = []
            elif isinstance(hourly, BaseException):
                raise hourly
        else:
            predictions = await self.get_predictions(station_id, timeout=timeout)
            hourly = []

        if len(predictions) < 2:
            raise UpstreamError("tide_predictions", f"station {station_id} returned {len(predictions)} predictions")

        return CachedTideSeries(
            station_id=station_id,
            predictions=predictions,
            hourly=hourly,
            fetched_at=self.clock()
        )

    async def get_series(
        self,
        station_id: str,
        timeout: Optional[float] = None
    ) -> Tuple[CachedTideSeries, bool]:
        """Cached series for a station and whether it is stale."""
        cached = await self.cache.get(station_id)
        if cached is not None and self.cache.is_fresh(cached):
            logger.debug(f"Tide cache hit for station {station_id}")
            return cached, False

        try:
            series = await self._fetch_series(station_id, timeout)
        except UpstreamError as e:
            if cached is not None:
                logger.warning(
                    f"Serving stale tide data for station {station_id} "
                    f"(fetched {cached.fetched_at.isoformat()}): {str(e)}"
                )
                return cached, True
            logger.error(f"No tide data for station {station_id}: {str(e)}")
            raise DataUnavailableError(station_id, str(e)) from e

        await self.cache.put(series)
        logger.info(f"Fetched {len(series.predictions)} tide predictions for station {station_id}")
        return series, False

    async def get_tide_state(
        self,
        station_id: str,
        at_time: Optional[datetime] = None,
        timeout: Optional[float] = None
    ) -> TideStateReading:
        """Tide height and direction for a station at at_time (default now)."""
        series, is_stale = await self.get_series(station_id, timeout)
        at_time = as_utc(at_time or self.clock())
        return TideStateReading(
            station_id=station_id,
            state=interpolate(series.predictions, at_time),
            is_stale=is_stale,
            fetched_at=series.fetched_at,
            next_event=next_tide_event(series.predictions, at_time)
        )

    async def get_day_tides(self, station_id: str, day_offset: int = 0) -> DayTides:
        """Hourly curve and hi/lo events for today (0), tomorrow (1), ..."""
        series, is_stale = await self.get_series(station_id)
        day = (self.clock() + timedelta(days=day_offset)).astimezone(timezone.utc).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        next_day = day + timedelta(days=1)
        return DayTides(
            station_id=station_id,
            day=day,
            hourly=[h for h in series.hourly if day <= h.time < next_day],
            predictions=[p for p in series.predictions if day <= p.time < next_day],
            is_stale=is_stale
        )

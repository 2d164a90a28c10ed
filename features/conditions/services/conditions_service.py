import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, Tuple

from features.common.exceptions.engine_exceptions import DataUnavailableError, UpstreamError
from features.common.models.geo_types import GeoPoint, StationKind
from features.conditions.models.condition_types import (
    BuoyObservation,
    ConditionsSource,
    ForecastConditions,
    SpotConditions
)
from features.stations.services.geo_index import GeoIndex
from features.tides.models.tide_types import TideStateReading
from features.tides.services.tide_interpolator import TideInterpolator
from features.triggers.models.trigger_types import ConditionSnapshot
from core.config import settings

logger = logging.getLogger(__name__)

class ForecastFetcher(Protocol):
    async def fetch(self, lat: float, lon: float) -> ForecastConditions:
        ...

class BuoyFetcher(Protocol):
    async def get_observation(self, station_id: str) -> Optional[BuoyObservation]:
        ...

class ConditionsService:
    """Assembles a ConditionSnapshot for a spot.

    Swell and wind come from the point forecast, falling back to a buoy when
    the forecast is unavailable; missing swell/wind raises DataUnavailableError.
    Tide comes from the nearest tide station through the interpolator and is
    left empty, with a reason, when it cannot be had.
    """

    def __init__(
        self,
        geo_index: GeoIndex,
        tide_interpolator: TideInterpolator,
        forecast_fetcher: ForecastFetcher,
        buoy_fetcher: Optional[BuoyFetcher] = None
    ):
        self.geo_index = geo_index
        self.tide_interpolator = tide_interpolator
        self.forecast_fetcher = forecast_fetcher
        self.buoy_fetcher = buoy_fetcher

    async def get_conditions(
        self,
        point: GeoPoint,
        at_time: Optional[datetime] = None,
        buoy_id: Optional[str] = None,
        include_buoy: bool = False
    ) -> SpotConditions:
        """Get the current snapshot for a point.

        With include_buoy the latest reading from buoy_id, or the nearest buoy,
        is attached for live confirmation. A failed buoy read only leaves the
        buoy fields empty.
        """
        at_time = at_time or datetime.now(timezone.utc)
        (swell_and_wind, source, fallback), (tide, tide_reason), live = await asyncio.gather(
            self._get_swell_and_wind(point, buoy_id),
            self._get_tide_or_reason(point, at_time),
            self._get_live_buoy(point, buoy_id, include_buoy)
        )
        height, period, swell_dir, wind_speed, wind_dir = swell_and_wind
        observation = live or fallback

        return SpotConditions(
            location=point,
            snapshot=ConditionSnapshot(
                height_ft=height,
                period_sec=period,
                swell_direction_deg=swell_dir,
                wind_speed_mph=wind_speed,
                wind_direction_deg=wind_dir,
                tide_height_ft=tide.state.height_ft if tide else None,
                tide_direction=tide.state.direction if tide else None,
                buoy_height_ft=observation.wave_height_ft if observation else None,
                buoy_period_sec=observation.dominant_period_sec if observation else None
            ),
            source=source,
            buoy_station_id=observation.station_id if observation else None,
            tide_station_id=tide.station_id if tide else None,
            tide_is_stale=tide.is_stale if tide else False,
            tide_unavailable_reason=tide_reason,
            as_of=at_time
        )

    async def _get_tide_or_reason(
        self,
        point: GeoPoint,
        at_time: datetime
    ) -> Tuple[Optional[TideStateReading], Optional[str]]:
        try:
            return await self._get_tide(point, at_time), None
        except DataUnavailableError as e:
            logger.warning(f"Tide unavailable for {point.lat},{point.lon}: {str(e)}")
            return None, str(e)

    async def _get_live_buoy(
        self,
        point: GeoPoint,
        buoy_id: Optional[str],
        include_buoy: bool
    ) -> Optional[BuoyObservation]:
        if not include_buoy:
            return None
        try:
            return await self._get_buoy_observation(point, buoy_id)
        except DataUnavailableError as e:
            logger.warning(f"Live buoy reading unavailable for {point.lat},{point.lon}: {str(e)}")
            return None

    async def _get_tide(self, point: GeoPoint, at_time: datetime) -> TideStateReading:
        nearest = self.geo_index.nearest_one(
            point,
            kind=StationKind.TIDE_STATION,
            max_distance_miles=settings.max_tide_station_distance_miles
        )
        if nearest is None:
            raise DataUnavailableError(
                None,
                f"no tide station within {settings.max_tide_station_distance_miles} miles "
                f"of {point.lat},{point.lon}"
            )
        return await self.tide_interpolator.get_tide_state(nearest.station.id, at_time=at_time)

    async def _get_swell_and_wind(
        self,
        point: GeoPoint,
        buoy_id: Optional[str] = None
    ) -> Tuple[Tuple[float, float, float, float, float], ConditionsSource, Optional[BuoyObservation]]:
        try:
            forecast = await self.forecast_fetcher.fetch(point.lat, point.lon)
            return (
                (
                    forecast.swell_height_ft,
                    forecast.swell_period_sec,
                    forecast.swell_direction_deg,
                    forecast.wind_speed_mph,
                    forecast.wind_direction_deg
                ),
                ConditionsSource.FORECAST,
                None
            )
        except UpstreamError as e:
            logger.warning(f"Forecast unavailable for {point.lat},{point.lon}, trying buoy: {str(e)}")

        observation = await self._get_buoy_observation(point, buoy_id)
        missing = [
            name for name, value in (
                ("period", observation.dominant_period_sec),
                ("wave direction", observation.mean_wave_direction_deg),
                ("wind speed", observation.wind_speed_mph),
                ("wind direction", observation.wind_direction_deg),
            )
            if value is None
        ]
        if missing:
            raise DataUnavailableError(
                observation.station_id,
                f"buoy observation missing {', '.join(missing)}"
            )
        return (
            (
                observation.wave_height_ft,
                observation.dominant_period_sec,
                observation.mean_wave_direction_deg,
                observation.wind_speed_mph,
                observation.wind_direction_deg
            ),
            ConditionsSource.BUOY,
            observation
        )

    async def _get_buoy_observation(self, point: GeoPoint, buoy_id: Optional[str] = None) -> BuoyObservation:
        if self.buoy_fetcher is None:
            raise DataUnavailableError(None, "no buoy source configured")

        if buoy_id:
            station_id = buoy_id
        else:
            nearest = self.geo_index.nearest_one(
                point,
                kind=StationKind.BUOY,
                max_distance_miles=settings.max_buoy_distance_miles
            )
            if nearest is None:
                raise DataUnavailableError(
                    None,
                    f"no buoy within {settings.max_buoy_distance_miles} miles"
                )
            station_id = nearest.station.id

        try:
            observation = await self.buoy_fetcher.get_observation(station_id)
        except UpstreamError as e:
            raise DataUnavailableError(station_id, str(e)) from e
        if observation is None:
            raise DataUnavailableError(station_id, "no recent buoy observation")
        if observation.is_stale:
            logger.warning(f"Using stale buoy observation from {station_id} ({observation.age_minutes:.0f} min old)")
        return observation

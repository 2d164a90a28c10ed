import asyncio
import logging
import aiohttp
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from features.common.exceptions.engine_exceptions import UpstreamError, UpstreamTimeoutError
from features.tides.models.tide_types import HourlyTide, TidePrediction
from core.config import settings

logger = logging.getLogger(__name__)

NOAA_TIME_FORMAT = "%Y-%m-%d %H:%M"
SOURCE = "noaa_coops"

def parse_noaa_time(value: str) -> datetime:
    """Parse a CO-OPS timestamp requested with time_zone=gmt."""
    return datetime.strptime(value, NOAA_TIME_FORMAT).replace(tzinfo=timezone.utc)

def parse_hilo_predictions(payload: Dict[str, Any]) -> List[TidePrediction]:
    """Convert a CO-OPS hilo response body into time-ascending predictions.

    A body that is not shaped like a predictions response raises
    UpstreamError, the same as an HTTP failure.
    """
    _raise_for_api_error(payload)
    try:
        predictions = [
            TidePrediction(
                time=parse_noaa_time(p["t"]),
                height_ft=float(p["v"]),
                is_high=str(p.get("type") or "").upper() == "H"
            )
            for p in payload.get("predictions") or []
        ]
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise UpstreamError(SOURCE, f"malformed hilo predictions: {str(e)}") from e
    return sorted(predictions, key=lambda p: p.time)

def parse_hourly_predictions(payload: Dict[str, Any]) -> List[HourlyTide]:
    """Convert a CO-OPS hourly response body into time-ascending heights."""
    _raise_for_api_error(payload)
    try:
        hourly = [
            HourlyTide(time=parse_noaa_time(p["t"]), height_ft=float(p["v"]))
            for p in payload.get("predictions") or []
        ]
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise UpstreamError(SOURCE, f"malformed hourly predictions: {str(e)}") from e
    return sorted(hourly, key=lambda h: h.time)

def _raise_for_api_error(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise UpstreamError(SOURCE, f"unexpected response body of type {type(payload).__name__}")
    if "error" not in payload:
        return
    error = payload["error"]
    message = error.get("message", "Unknown error from NOAA API") if isinstance(error, dict) else str(error)
    if "No Predictions data was found" in message:
        # Stations without prediction data yield an empty series
        return
    raise UpstreamError(SOURCE, message)

class NOAATideClient:
    """Client for the NOAA CO-OPS tide prediction API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> None:
        self.data_url = base_url or settings.coops_base_url
        self.timeout = timeout or settings.request["timeout"]
        self._session: Optional[aiohttp.ClientSession] = None

    async def _init_session(self) -> aiohttp.ClientSession:
        if not self._session:
            self._session = aiohttp.ClientSession(
                headers={
                    "User-Agent": settings.request["user_agent"],
                    "Accept": "application/json",
                }
            )
        return self._session

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    async def fetch(
        self,
        station_id: str,
        begin_date: datetime,
        range_hours: int
    ) -> List[TidePrediction]:
        """Get high/low tide events for a station."""
        payload = await self._get_predictions(station_id, begin_date, range_hours, "hilo")
        return parse_hilo_predictions(payload)

    async def fetch_hourly(
        self,
        station_id: str,
        begin_date: datetime,
        range_hours: int
    ) -> List[HourlyTide]:
        """Get hourly predicted heights for a station."""
        payload = await self._get_predictions(station_id, begin_date, range_hours, "h")
        return parse_hourly_predictions(payload)

    async def _get_predictions(
        self,
        station_id: str,
        begin_date: datetime,
        range_hours: int,
        interval: str
    ) -> Dict[str, Any]:
        params = {
            **settings.coops_params,
            "station": station_id,
            "interval": interval,
            "begin_date": begin_date.astimezone(timezone.utc).strftime("%Y%m%d %H:%M"),
            "range": str(range_hours),
        }

        try:
            session = await self._init_session()
            async with session.get(
                self.data_url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                response.raise_for_status()
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    logger.error(f"Invalid JSON in tide predictions for station {station_id}: {str(e)}")
                    raise UpstreamError(SOURCE, f"invalid JSON for station {station_id}") from e

        except asyncio.TimeoutError:
            logger.error(f"Timed out fetching tide predictions for station {station_id}")
            raise UpstreamTimeoutError(SOURCE, f"timeout after {self.timeout}s for station {station_id}")
        except aiohttp.ClientError as e:
            logger.error(f"Error fetching tide predictions for station {station_id}: {str(e)}")
            raise UpstreamError(SOURCE, str(e))

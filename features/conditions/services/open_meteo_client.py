import asyncio
import logging
import aiohttp
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from features.common.exceptions.engine_exceptions import UpstreamError, UpstreamTimeoutError
from features.common.utils.conversions import UnitConversions
from features.conditions.models.condition_types import ForecastConditions
from core.config import settings

logger = logging.getLogger(__name__)

SOURCE = "open_meteo"
MARINE_VARIABLES = [
    "swell_wave_height",
    "swell_wave_period",
    "swell_wave_direction",
    "wind_wave_height",
    "wind_wave_period",
]
WEATHER_VARIABLES = ["wind_speed_10m", "wind_direction_10m"]

def _parse_hour(value: str) -> datetime:
    # Requested with timezone=GMT, so naive ISO strings are UTC
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)

def current_hour_index(times: List[str], now: datetime) -> int:
    """Index of the first hourly slot at or after the start of now's hour."""
    hour_start = now.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)
    for index, value in enumerate(times):
        if _parse_hour(value) >= hour_start:
            return index
    return 0

def _value_at(hourly: Dict[str, Any], key: str, index: int) -> Optional[float]:
    values = hourly.get(key) or []
    if index >= len(values):
        return None
    return values[index]

def parse_forecast(
    marine: Dict[str, Any],
    weather: Dict[str, Any],
    now: datetime
) -> ForecastConditions:
    """Pick the current hour out of marine and weather forecast bodies.

    Raises UpstreamError when the hourly series or a required value is missing.
    """
    if not isinstance(marine, dict) or not isinstance(weather, dict):
        raise UpstreamError(SOURCE, "forecast response is not a JSON object")
    marine_hourly = marine.get("hourly") or {}
    weather_hourly = weather.get("hourly") or {}
    times = marine_hourly.get("time") or []
    if not times:
        raise UpstreamError(SOURCE, "marine forecast has no hourly data")

    try:
        return _forecast_at(marine_hourly, weather_hourly, times, now)
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise UpstreamError(SOURCE, f"malformed forecast: {str(e)}") from e

def _forecast_at(
    marine_hourly: Dict[str, Any],
    weather_hourly: Dict[str, Any],
    times: List[str],
    now: datetime
) -> ForecastConditions:
    index = current_hour_index(times, now)
    required = {
        "swell_wave_height": _value_at(marine_hourly, "swell_wave_height", index),
        "swell_wave_period": _value_at(marine_hourly, "swell_wave_period", index),
        "swell_wave_direction": _value_at(marine_hourly, "swell_wave_direction", index),
        "wind_speed_10m": _value_at(weather_hourly, "wind_speed_10m", index),
        "wind_direction_10m": _value_at(weather_hourly, "wind_direction_10m", index),
    }
    missing = [key for key, value in required.items() if value is None]
    if missing:
        raise UpstreamError(SOURCE, f"forecast missing {', '.join(missing)} at {times[index]}")

    return ForecastConditions(
        time=_parse_hour(times[index]),
        swell_height_ft=UnitConversions.meters_to_feet(required["swell_wave_height"]),
        swell_period_sec=required["swell_wave_period"],
        swell_direction_deg=required["swell_wave_direction"],
        wind_speed_mph=UnitConversions.kmh_to_mph(required["wind_speed_10m"]),
        wind_direction_deg=required["wind_direction_10m"],
        wind_wave_height_ft=UnitConversions.meters_to_feet(
            _value_at(marine_hourly, "wind_wave_height", index)
        ),
        wind_wave_period_sec=_value_at(marine_hourly, "wind_wave_period", index)
    )

class OpenMeteoClient:
    """Client for the Open-Meteo marine and weather forecast APIs."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout or settings.request["timeout"]
        self._session: Optional[aiohttp.ClientSession] = None

    async def _init_session(self) -> aiohttp.ClientSession:
        if not self._session:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": settings.request["user_agent"]}
            )
        return self._session

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    async def _get_json(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        session = await self._init_session()
        async with session.get(
            url,
            params=params,
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as response:
            response.raise_for_status()
            try:
                return await response.json()
            except ValueError as e:
                raise UpstreamError(SOURCE, f"invalid JSON from {url}") from e

    async def fetch(self, lat: float, lon: float, now: Optional[datetime] = None) -> ForecastConditions:
        """Get the current-hour forecast for a point."""
        now = now or datetime.now(timezone.utc)
        base = {
            "latitude": f"{lat:.4f}",
            "longitude": f"{lon:.4f}",
            "forecast_days": "2",
            "timezone": "GMT",
        }
        try:
            marine, weather = await asyncio.gather(
                self._get_json(
                    settings.open_meteo_marine_url,
                    {**base, "hourly": ",".join(MARINE_VARIABLES)}
                ),
                self._get_json(
                    settings.open_meteo_forecast_url,
                    {**base, "hourly": ",".join(WEATHER_VARIABLES)}
                )
            )
        except asyncio.TimeoutError:
            logger.error(f"Timed out fetching forecast for {lat},{lon}")
            raise UpstreamTimeoutError(SOURCE, f"timeout after {self.timeout}s for {lat},{lon}")
        except aiohttp.ClientError as e:
            logger.error(f"Error fetching forecast for {lat},{lon}: {str(e)}")
            raise UpstreamError(SOURCE, str(e))

        return parse_forecast(marine, weather, now)

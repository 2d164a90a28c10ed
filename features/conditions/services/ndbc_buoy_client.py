import asyncio
import logging
import aiohttp
from datetime import datetime, timezone
from typing import List, Optional

from features.common.exceptions.engine_exceptions import UpstreamError, UpstreamTimeoutError
from features.common.utils.conversions import UnitConversions
from features.conditions.models.condition_types import BuoyObservation
from core.config import settings

logger = logging.getLogger(__name__)

SOURCE = "ndbc"

# Column layout of realtime2 standard meteorological files
DEFAULT_HEADERS = [
    "#YY", "MM", "DD", "hh", "mm", "WDIR", "WSPD", "GST", "WVHT", "DPD",
    "APD", "MWD", "PRES", "ATMP", "WTMP", "DEWP", "VIS", "PTDY", "TIDE",
]

def _parse_value(value: Optional[str]) -> Optional[float]:
    """Parse NDBC value, handling missing value indicators."""
    if value in (None, "MM", "N/A", "missing"):
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None

def parse_observation(
    text: str,
    station_id: str,
    now: Optional[datetime] = None,
    stale_minutes: Optional[float] = None,
    max_age_hours: Optional[float] = None
) -> Optional[BuoyObservation]:
    """Latest observation with a wave height from a realtime2 .txt body.

    Comment lines are skipped; the first line naming columns is used as the
    header. Returns None when no line carries WVHT or the newest such line is
    older than max_age_hours.
    """
    now = now or datetime.now(timezone.utc)
    stale_minutes = stale_minutes if stale_minutes is not None else settings.buoy_stale_minutes
    max_age_hours = max_age_hours if max_age_hours is not None else settings.buoy_max_age_hours

    headers: List[str] = DEFAULT_HEADERS
    for line in text.strip().splitlines():
        if line.startswith("#"):
            fields = line.split()
            if "WVHT" in fields:
                headers = fields
            continue

        data = dict(zip(headers, line.split()))
        if len(data) < len(headers):
            continue

        wave_height = _parse_value(data.get("WVHT"))
        if wave_height is None:
            continue

        try:
            year = int(data["#YY"])
            obs_time = datetime(
                year + 2000 if year < 100 else year,
                int(data["MM"]),
                int(data["DD"]),
                int(data["hh"]),
                int(data["mm"]),
                tzinfo=timezone.utc
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Buoy {station_id}: skipping line with bad timestamp: {str(e)}")
            continue
        age_minutes = (now - obs_time).total_seconds() / 60
        if age_minutes > max_age_hours * 60:
            logger.info(f"Buoy {station_id}: data too old ({age_minutes / 60:.0f}h)")
            return None

        return BuoyObservation(
            station_id=station_id,
            time=obs_time,
            wave_height_ft=UnitConversions.meters_to_feet(wave_height),
            dominant_period_sec=_parse_value(data.get("DPD")),
            mean_wave_direction_deg=_parse_value(data.get("MWD")),
            wind_speed_mph=UnitConversions.ms_to_mph(_parse_value(data.get("WSPD"))),
            wind_direction_deg=_parse_value(data.get("WDIR")),
            water_temp_c=_parse_value(data.get("WTMP")),
            age_minutes=age_minutes,
            is_stale=age_minutes > stale_minutes
        )

    logger.info(f"Buoy {station_id}: no valid observation found")
    return None

class NDBCBuoyClient:
    def __init__(self, timeout: Optional[float] = None):
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

    async def get_observation(self, station_id: str) -> Optional[BuoyObservation]:
        """Get latest observation data for a station."""
        station_id = station_id.upper()
        url = f"{settings.ndbc_base_url}{station_id}.{settings.ndbc_data_types['std']}"
        try:
            session = await self._init_session()
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                response.raise_for_status()
                text = await response.text()

        except asyncio.TimeoutError:
            logger.error(f"Timed out fetching observation for station {station_id}")
            raise UpstreamTimeoutError(SOURCE, f"timeout after {self.timeout}s for station {station_id}")
        except aiohttp.ClientError as e:
            logger.error(f"Error fetching observation for station {station_id}: {str(e)}")
            raise UpstreamError(SOURCE, str(e))

        if not text:
            return None
        return parse_observation(text, station_id)

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from features.common.models.geo_types import GeoPoint
from features.triggers.models.trigger_types import ConditionSnapshot

class ForecastConditions(BaseModel):
    """Modelled swell and wind for the current hour at a point."""
    time: datetime
    swell_height_ft: float
    swell_period_sec: float
    swell_direction_deg: float
    wind_speed_mph: float
    wind_direction_deg: float
    wind_wave_height_ft: Optional[float] = None
    wind_wave_period_sec: Optional[float] = None

class BuoyObservation(BaseModel):
    """Latest usable realtime observation from an NDBC buoy."""
    station_id: str
    time: datetime
    wave_height_ft: float
    dominant_period_sec: Optional[float] = None
    mean_wave_direction_deg: Optional[float] = None
    wind_speed_mph: Optional[float] = None
    wind_direction_deg: Optional[float] = None
    water_temp_c: Optional[float] = None
    age_minutes: float
    is_stale: bool = Field(..., description="True when older than the configured stale threshold")

class ConditionsSource(str, Enum):
    FORECAST = "forecast"
    BUOY = "buoy"

class SpotConditions(BaseModel):
    """Snapshot for a spot plus where each part of it came from.

    buoy_station_id names the buoy behind the snapshot's buoy readings, or
    the buoy that stood in for the forecast when source is "buoy". Tide
    fields are empty and tide_unavailable_reason is set when no tide station
    could answer.
    """
    location: GeoPoint
    snapshot: ConditionSnapshot
    source: ConditionsSource
    buoy_station_id: Optional[str] = None
    tide_station_id: Optional[str] = None
    tide_is_stale: bool = False
    tide_unavailable_reason: Optional[str] = None
    as_of: datetime

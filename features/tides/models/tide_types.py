from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class TideDirection(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    SLACK = "slack"

class TidePrediction(BaseModel):
    """A single high or low tide event."""
    model_config = ConfigDict(frozen=True)

    time: datetime = Field(..., description="Time of the extremum (UTC)")
    height_ft: float = Field(..., description="Height in feet above MLLW")
    is_high: bool = Field(..., description="True for high tide, False for low")

class HourlyTide(BaseModel):
    """Hourly predicted water level."""
    model_config = ConfigDict(frozen=True)

    time: datetime
    height_ft: float

class TideState(BaseModel):
    """Water level and movement at a point in time."""
    model_config = ConfigDict(frozen=True)

    height_ft: float
    direction: TideDirection
    as_of: datetime

class CachedTideSeries(BaseModel):
    """Predictions for one station as fetched at fetched_at.

    Entries are replaced wholesale on refresh, never modified in place.
    """
    model_config = ConfigDict(frozen=True)

    station_id: str
    predictions: List[TidePrediction]
    hourly: List[HourlyTide] = []
    fetched_at: datetime

class TideStateReading(BaseModel):
    """Tide state for a station plus the freshness of the data behind it."""
    station_id: str
    state: TideState
    is_stale: bool = Field(..., description="True when served from an expired cache entry")
    fetched_at: datetime
    next_event: Optional[TidePrediction] = None

class DayTides(BaseModel):
    """Hourly curve and hi/lo events for one calendar day (UTC)."""
    station_id: str
    day: datetime
    hourly: List[HourlyTide]
    predictions: List[TidePrediction]
    is_stale: bool

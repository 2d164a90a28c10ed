from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from features.tides.models.tide_types import DayTides, TideStateReading
from features.tides.services.tide_interpolator import TideInterpolator

router = APIRouter(
    prefix="/tides",
    tags=["Tides"]
)

def get_interpolator(request: Request) -> TideInterpolator:
    """Dependency to get the TideInterpolator instance."""
    return request.app.state.tide_interpolator

@router.get(
    "/stations/{station_id}/state",
    response_model=TideStateReading,
    summary="Get the current tide state for a station",
    description="Returns interpolated tide height and direction, flagged stale when served from an expired cache entry"
)
async def get_tide_state(
    station_id: str,
    at: Optional[datetime] = Query(None, description="Instant to evaluate (defaults to now, naive values are UTC)"),
    interpolator: TideInterpolator = Depends(get_interpolator)
) -> TideStateReading:
    return await interpolator.get_tide_state(station_id, at_time=at)

@router.get(
    "/stations/{station_id}/predictions",
    response_model=DayTides,
    summary="Get tide predictions for a station",
    description="Returns the hourly tide curve and high/low events for one UTC day"
)
async def get_station_predictions(
    station_id: str,
    day_offset: int = Query(0, ge=0, le=2, description="0 for today, 1 for tomorrow, 2 for the day after"),
    interpolator: TideInterpolator = Depends(get_interpolator)
) -> DayTides:
    return await interpolator.get_day_tides(station_id, day_offset)

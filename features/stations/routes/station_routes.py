from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query, Request
from features.common.models.geo_types import GeoPoint, ReferenceStation, StationKind
from features.stations.models.station_types import (
    Exposure,
    StationDistanceResponse,
    StationRecommendationResponse
)
from features.stations.services.station_service import StationService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/stations",
    tags=["Stations"]
)

def get_service(request: Request) -> StationService:
    """Dependency to get the StationService instance."""
    return request.app.state.station_service

@router.get(
    "/geojson",
    summary="Get all stations in GeoJSON format",
    description="Returns buoys and tide stations in GeoJSON format for mapping"
)
async def get_stations_geojson(
    kind: Optional[StationKind] = Query(None, description="Restrict to one station kind"),
    service: StationService = Depends(get_service)
) -> Dict[str, Any]:
    return await service.get_stations_geojson(kind=kind)

@router.get(
    "/nearest",
    response_model=List[StationDistanceResponse],
    summary="Get the stations nearest a location",
    description="Returns stations ordered by great-circle distance, within the configured maximum distance"
)
async def get_nearest_stations(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    kind: Optional[StationKind] = Query(None),
    limit: int = Query(1, ge=1, le=50),
    max_distance_miles: Optional[float] = Query(None, gt=0),
    service: StationService = Depends(get_service)
) -> List[StationDistanceResponse]:
    return service.get_nearest(
        GeoPoint(lat=lat, lon=lon),
        kind=kind,
        limit=limit,
        max_distance_miles=max_distance_miles
    )

@router.get(
    "/recommendations",
    response_model=StationRecommendationResponse,
    summary="Get recommended stations for a spot",
    description="Ranks stations by distance, preferring those in the spot's swell path when its exposure is known"
)
async def get_station_recommendations(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    kind: StationKind = Query(StationKind.BUOY),
    exposure: Optional[Exposure] = Query(None),
    region: str = Query("", description="Free-text region used to infer exposure"),
    country: str = Query(""),
    limit: Optional[int] = Query(None, ge=1, le=50),
    service: StationService = Depends(get_service)
) -> StationRecommendationResponse:
    return service.get_recommendations(
        GeoPoint(lat=lat, lon=lon),
        kind=kind,
        exposure=exposure,
        region=region,
        country=country,
        limit=limit
    )

@router.get(
    "/{station_id}",
    response_model=ReferenceStation,
    summary="Get a station",
    description="Returns catalog details for one station"
)
async def get_station(
    station_id: str,
    kind: Optional[StationKind] = Query(None),
    service: StationService = Depends(get_service)
) -> ReferenceStation:
    return service.get_station(station_id, kind)

from fastapi import APIRouter, Depends, Query, Request
from features.common.models.geo_types import GeoPoint
from features.conditions.models.condition_types import SpotConditions
from features.conditions.services.conditions_service import ConditionsService

router = APIRouter(
    prefix="/conditions",
    tags=["Conditions"]
)

def get_service(request: Request) -> ConditionsService:
    """Dependency to get the ConditionsService instance."""
    return request.app.state.conditions_service

@router.get(
    "",
    response_model=SpotConditions,
    summary="Get current conditions for a location",
    description="Returns swell, wind and tide for the current hour at a point"
)
async def get_conditions(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude"),
    service: ConditionsService = Depends(get_service)
) -> SpotConditions:
    return await service.get_conditions(GeoPoint(lat=lat, lon=lon))

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from features.common.models.geo_types import ReferenceStation, StationKind

class Exposure(str, Enum):
    """Coastal exposure, by the direction swells usually arrive from."""
    GULF = "gulf"
    ATLANTIC = "atlantic"
    PACIFIC = "pacific"
    CARIBBEAN = "caribbean"
    NORTH = "north"
    SOUTH = "south"
    UNKNOWN = "unknown"

class StationDistanceResponse(BaseModel):
    """Station with distance from the requested point."""
    station: ReferenceStation
    distance_miles: float = Field(..., description="Great-circle distance in miles")

class StationRecommendation(BaseModel):
    """Ranked station candidate for spot assignment."""
    station: ReferenceStation
    distance_miles: float = Field(..., description="Great-circle distance in miles")
    bearing_deg: float = Field(..., description="Bearing from spot to station")
    swell_path_score: float = Field(..., description="0-1, how well the station sits in the swell path")
    proximity_score: float = Field(..., description="0-1, closer is higher")
    combined_score: float = Field(..., description="Weighted swell path + proximity score")

class StationRecommendationResponse(BaseModel):
    """Recommendations for a location."""
    kind: StationKind
    exposure: Optional[Exposure] = None
    recommendations: List[StationRecommendation]

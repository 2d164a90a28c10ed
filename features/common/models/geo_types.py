from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

class GeoPoint(BaseModel):
    """Immutable latitude/longitude pair in decimal degrees."""
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lon: float = Field(..., ge=-180, le=180, description="Longitude")

class StationKind(str, Enum):
    BUOY = "buoy"
    TIDE_STATION = "tide_station"

class ReferenceStation(BaseModel):
    """Fixed reference point publishing ocean data."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Upstream-assigned station identifier")
    name: str
    location: GeoPoint
    kind: StationKind
    region: str = ""

class StationWithDistance(BaseModel):
    """Catalog station paired with its distance from a query point."""
    model_config = ConfigDict(frozen=True)

    station: ReferenceStation
    distance_miles: float

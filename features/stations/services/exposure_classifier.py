from typing import Dict, Optional

from features.common.models.range_types import CircularRange
from features.stations.models.station_types import Exposure

# North shores of the Hawaiian islands sit above roughly 21.0N
HAWAII_NORTH_SHORE_LAT = 21.0

# Bearing arcs (spot -> station) that sit in each exposure's swell path
PREFERRED_BEARINGS: Dict[Exposure, CircularRange] = {
    Exposure.GULF: CircularRange(start_deg=135, end_deg=225),
    Exposure.ATLANTIC: CircularRange(start_deg=45, end_deg=135),
    Exposure.PACIFIC: CircularRange(start_deg=225, end_deg=315),
    Exposure.CARIBBEAN: CircularRange(start_deg=45, end_deg=135),
    Exposure.NORTH: CircularRange(start_deg=270, end_deg=45),
    Exposure.SOUTH: CircularRange(start_deg=135, end_deg=225),
}

_CENTRAL_AMERICA = ("costa rica", "nicaragua", "panama", "el salvador", "guatemala")

def _has(text: str, *needles: str) -> bool:
    return any(needle in text for needle in needles)

def infer_exposure(region: str = "", country: str = "", lat: float = 0.0) -> Exposure:
    """Classify a spot's coastal exposure from free-text region/country names."""
    text = f"{region} {country}".lower()

    if _has(text, "gulf coast", "gulf of mexico"):
        return Exposure.GULF
    if _has(text, "caribbean"):
        return Exposure.CARIBBEAN
    if _has(text, "atlantic", "east coast", "south east", "north east"):
        return Exposure.ATLANTIC
    if _has(text, "pacific", "west coast", "north west"):
        return Exposure.PACIFIC

    if _has(text, "hawaii"):
        return Exposure.NORTH if lat > HAWAII_NORTH_SHORE_LAT else Exposure.SOUTH

    if _has(text, "california", "oregon", "washington"):
        return Exposure.PACIFIC

    if _has(text, "florida"):
        if _has(text, "east"):
            return Exposure.ATLANTIC
        if _has(text, "gulf", "west"):
            return Exposure.GULF
        # More Florida surf faces the Atlantic
        return Exposure.ATLANTIC

    if _has(text, "mexico"):
        if _has(text, "baja"):
            return Exposure.PACIFIC
        if _has(text, "yucatan"):
            return Exposure.CARIBBEAN
        return Exposure.PACIFIC

    if _has(text, *_CENTRAL_AMERICA):
        return Exposure.PACIFIC

    if _has(text, "canada"):
        if _has(text, "west", "british columbia"):
            return Exposure.PACIFIC
        if _has(text, "east", "nova scotia"):
            return Exposure.ATLANTIC

    return Exposure.UNKNOWN

def preferred_bearing_range(exposure: Optional[Exposure]) -> Optional[CircularRange]:
    if exposure is None:
        return None
    return PREFERRED_BEARINGS.get(exposure)

def bearing_score(bearing_deg: float, preferred: Optional[CircularRange]) -> float:
    """1.0 inside the preferred arc, decaying linearly to 0 at 90 degrees outside.

    Without a preference every bearing scores a neutral 0.5.
    """
    if preferred is None:
        return 0.5
    return max(0.0, 1.0 - preferred.distance_outside(bearing_deg) / 90.0)

def proximity_score(distance_miles: float, max_distance_miles: float) -> float:
    if distance_miles <= 0:
        return 1.0
    if distance_miles >= max_distance_miles:
        return 0.0
    return 1.0 - distance_miles / max_distance_miles

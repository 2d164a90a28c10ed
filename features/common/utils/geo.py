import math

EARTH_RADIUS_MILES = 3959.0

def normalize_degrees(degrees: float) -> float:
    """Normalize an angle into [0, 360)."""
    normalized = ((degrees % 360.0) + 360.0) % 360.0
    # Tiny negative inputs round up to exactly 360.0
    if normalized >= 360.0:
        return 0.0
    return normalized

def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles on a spherical Earth."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c

def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial compass bearing from point 1 to point 2 (0=N, 90=E)."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    d_lon = math.radians(lon2 - lon1)

    y = math.sin(d_lon) * math.cos(lat2_rad)
    x = (
        math.cos(lat1_rad) * math.sin(lat2_rad)
        - math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(d_lon)
    )
    return normalize_degrees(math.degrees(math.atan2(y, x)))

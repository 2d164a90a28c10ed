from typing import Dict, Iterable, List, Optional, Tuple

from features.common.utils.geo import normalize_degrees

CARDINAL_DIRECTIONS: List[str] = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]
CARDINAL_STEP = 360.0 / len(CARDINAL_DIRECTIONS)  # 22.5
CARDINAL_DEGREES: Dict[str, float] = {
    name: index * CARDINAL_STEP for index, name in enumerate(CARDINAL_DIRECTIONS)
}

def is_full_circle(min_deg: Optional[float], max_deg: Optional[float]) -> bool:
    """True for the stored "any direction" convention (0 to 360)."""
    return min_deg == 0 and max_deg == 360

def _cardinal_index(degrees: float) -> int:
    # Half-way bearings round clockwise
    return int(normalize_degrees(degrees) / CARDINAL_STEP + 0.5) % len(CARDINAL_DIRECTIONS)

def degrees_to_cardinal(degrees: float) -> str:
    """Convert a compass bearing to the nearest 16-point cardinal name."""
    return CARDINAL_DIRECTIONS[_cardinal_index(degrees)]

def degree_range_to_directions(min_deg: float, max_deg: float) -> List[str]:
    """List the cardinal names covered by a clockwise degree range."""
    if is_full_circle(min_deg, max_deg):
        return list(CARDINAL_DIRECTIONS)

    start = normalize_degrees(min_deg)
    end = normalize_degrees(max_deg)
    start_index = _cardinal_index(start)
    end_index = _cardinal_index(end)

    if start <= end:
        indexes = list(range(start_index, end_index + 1))
    else:
        indexes = list(range(start_index, len(CARDINAL_DIRECTIONS))) + list(range(0, end_index + 1))

    result: List[str] = []
    for index in indexes:
        name = CARDINAL_DIRECTIONS[index]
        if name not in result:
            result.append(name)
    return result

def directions_to_degree_bounds(directions: Optional[Iterable[str]]) -> Tuple[float, float]:
    """Smallest clockwise degree range covering a set of cardinal names.

    The range excludes the largest gap between consecutive directions, padded
    by half a compass point on each side. An empty or complete set yields the
    full-circle convention (0, 360).
    """
    degrees = sorted({
        CARDINAL_DEGREES[name.upper()]
        for name in (directions or [])
        if name.upper() in CARDINAL_DEGREES
    })
    if not degrees or len(degrees) >= len(CARDINAL_DIRECTIONS):
        return 0.0, 360.0

    half_step = CARDINAL_STEP / 2
    if len(degrees) == 1:
        center = degrees[0]
        return normalize_degrees(center - half_step), normalize_degrees(center + half_step)

    max_gap = 0.0
    gap_end_index = 0
    for i, current in enumerate(degrees):
        following = degrees[(i + 1) % len(degrees)]
        gap = (360.0 - current) + following if i == len(degrees) - 1 else following - current
        if gap > max_gap:
            max_gap = gap
            gap_end_index = (i + 1) % len(degrees)

    start = degrees[gap_end_index] - half_step
    end = degrees[gap_end_index - 1] + half_step
    return normalize_degrees(start), normalize_degrees(end)

def format_direction_range(min_deg: float, max_deg: float) -> str:
    """Human-readable label such as "NW - NE" or "All Directions"."""
    if is_full_circle(min_deg, max_deg):
        return "All Directions"
    start = degrees_to_cardinal(min_deg)
    end = degrees_to_cardinal(max_deg)
    if start == end:
        return start
    return f"{start} - {end}"

import math
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from features.common.models.geo_types import (
    GeoPoint,
    ReferenceStation,
    StationKind,
    StationWithDistance
)
from features.common.utils.geo import haversine_miles

logger = logging.getLogger(__name__)

class GeoIndex:
    """Nearest-neighbor search over a fixed station catalog.

    The catalog is copied into a tuple at construction and never changes, so
    lookups are safe from any number of concurrent callers without locking.
    Catalogs hold a few hundred stations at most; a linear scan is enough.
    """

    def __init__(self, stations: Iterable[ReferenceStation]):
        self._stations: Tuple[ReferenceStation, ...] = tuple(stations)
        self._by_id: Dict[Tuple[StationKind, str], ReferenceStation] = {
            (station.kind, station.id): station for station in self._stations
        }
        logger.info(f"Geo index built over {len(self._stations)} stations")

    @property
    def stations(self) -> Tuple[ReferenceStation, ...]:
        return self._stations

    def get_station(
        self,
        station_id: str,
        kind: Optional[StationKind] = None
    ) -> Optional[ReferenceStation]:
        """Get station by ID, optionally restricted to one kind."""
        if kind is not None:
            return self._by_id.get((kind, station_id))
        return next((s for s in self._stations if s.id == station_id), None)

    @staticmethod
    def distance_miles(point: GeoPoint, station: ReferenceStation) -> float:
        return haversine_miles(point.lat, point.lon, station.location.lat, station.location.lon)

    def nearest(
        self,
        point: GeoPoint,
        kind: Optional[StationKind] = None,
        limit: int = 1,
        max_distance_miles: float = math.inf
    ) -> List[StationWithDistance]:
        """Stations closest to point, ascending by distance.

        Results are filtered to distance <= max_distance_miles and truncated to
        limit. No match yields an empty list.
        """
        if limit <= 0:
            return []

        candidates = [
            StationWithDistance(station=station, distance_miles=self.distance_miles(point, station))
            for station in self._stations
            if kind is None or station.kind == kind
        ]
        within = [c for c in candidates if c.distance_miles <= max_distance_miles]
        within.sort(key=lambda c: (c.distance_miles, c.station.id))
        return within[:limit]

    def nearest_one(
        self,
        point: GeoPoint,
        kind: Optional[StationKind] = None,
        max_distance_miles: float = math.inf
    ) -> Optional[StationWithDistance]:
        matches = self.nearest(point, kind=kind, limit=1, max_distance_miles=max_distance_miles)
        return matches[0] if matches else None

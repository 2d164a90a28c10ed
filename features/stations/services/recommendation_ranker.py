import logging
from typing import List, Optional
from pydantic import BaseModel, Field

from features.common.models.geo_types import GeoPoint, StationKind
from features.common.utils.geo import initial_bearing
from features.stations.models.station_types import Exposure, StationRecommendation
from features.stations.services.exposure_classifier import (
    bearing_score,
    preferred_bearing_range,
    proximity_score
)
from features.stations.services.geo_index import GeoIndex
from core.config import settings

logger = logging.getLogger(__name__)

class RankingWeights(BaseModel):
    """Tunable scoring configuration for station recommendations."""
    swell_path_weight: float = Field(default_factory=lambda: settings.ranking_swell_path_weight, ge=0)
    proximity_weight: float = Field(default_factory=lambda: settings.ranking_proximity_weight, ge=0)
    band_miles: float = Field(
        default_factory=lambda: settings.ranking_band_miles,
        description="Width of the distance bands inside which exposure may reorder; 0 disables"
    )

class RecommendationRanker:
    """Orders candidate stations for assignment to a spot.

    Distance ascending is the primary key. When the spot's exposure is known,
    stations falling in the same distance band are reordered by a weighted
    swell-path + proximity score; a station never jumps ahead of a station in
    a closer band.
    """

    def __init__(self, geo_index: GeoIndex, weights: Optional[RankingWeights] = None):
        self.geo_index = geo_index
        self.weights = weights or RankingWeights()

    def rank_stations(
        self,
        point: GeoPoint,
        exposure: Optional[Exposure] = None,
        limit: Optional[int] = None,
        kind: StationKind = StationKind.BUOY,
        max_distance_miles: Optional[float] = None
    ) -> List[StationRecommendation]:
        limit = settings.ranking_default_limit if limit is None else limit
        if max_distance_miles is None:
            max_distance_miles = (
                settings.max_buoy_distance_miles
                if kind == StationKind.BUOY
                else settings.max_tide_station_distance_miles
            )

        candidates = self.geo_index.nearest(
            point,
            kind=kind,
            limit=len(self.geo_index.stations),
            max_distance_miles=max_distance_miles
        )
        preferred = preferred_bearing_range(exposure)

        recommendations = []
        for candidate in candidates:
            location = candidate.station.location
            bearing = initial_bearing(point.lat, point.lon, location.lat, location.lon)
            swell_path = bearing_score(bearing, preferred)
            proximity = proximity_score(candidate.distance_miles, max_distance_miles)
            recommendations.append(
                StationRecommendation(
                    station=candidate.station,
                    distance_miles=candidate.distance_miles,
                    bearing_deg=bearing,
                    swell_path_score=swell_path,
                    proximity_score=proximity,
                    combined_score=(
                        swell_path * self.weights.swell_path_weight
                        + proximity * self.weights.proximity_weight
                    )
                )
            )

        # Candidates arrive sorted by distance; only reorder when exposure can inform it
        if preferred is not None and self.weights.band_miles > 0:
            band = self.weights.band_miles
            recommendations.sort(
                key=lambda r: (int(r.distance_miles // band), -r.combined_score, r.distance_miles)
            )
            logger.debug(f"Ranked {len(recommendations)} stations for {exposure.value} exposure")

        return recommendations[:max(limit, 0)]

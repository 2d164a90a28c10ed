import logging
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from geojson_pydantic import Feature, FeatureCollection, Point

from features.common.models.geo_types import GeoPoint, ReferenceStation, StationKind
from features.stations.models.station_types import (
    Exposure,
    StationDistanceResponse,
    StationRecommendationResponse
)
from features.stations.services.exposure_classifier import infer_exposure
from features.stations.services.geo_index import GeoIndex
from features.stations.services.recommendation_ranker import RecommendationRanker
from core.cache import cached
from core.config import settings

logger = logging.getLogger(__name__)

class StationService:
    def __init__(self, geo_index: GeoIndex, ranker: RecommendationRanker):
        self.geo_index = geo_index
        self.ranker = ranker

    def get_station(self, station_id: str, kind: Optional[StationKind] = None) -> ReferenceStation:
        """Get station by ID."""
        station = self.geo_index.get_station(station_id, kind)
        if not station:
            raise HTTPException(
                status_code=404,
                detail=f"Station {station_id} not found"
            )
        return station

    @cached(namespace="stations_geojson", key_params=("kind",))
    async def get_stations_geojson(self, kind: Optional[StationKind] = None) -> Dict[str, Any]:
        """Get stations in GeoJSON format."""
        features = [
            Feature(
                type="Feature",
                id=station.id,
                geometry=Point(type="Point", coordinates=(station.location.lon, station.location.lat)),
                properties={
                    "id": station.id,
                    "name": station.name,
                    "kind": station.kind.value,
                    "region": station.region,
                }
            )
            for station in self.geo_index.stations
            if kind is None or station.kind == kind
        ]
        collection = FeatureCollection(type="FeatureCollection", features=features)
        return collection.model_dump(mode="json", exclude_none=True)

    def get_nearest(
        self,
        point: GeoPoint,
        kind: Optional[StationKind] = None,
        limit: int = 1,
        max_distance_miles: Optional[float] = None
    ) -> List[StationDistanceResponse]:
        """Get the stations closest to a point."""
        if max_distance_miles is None:
            if kind == StationKind.BUOY:
                max_distance_miles = settings.max_buoy_distance_miles
            elif kind == StationKind.TIDE_STATION:
                max_distance_miles = settings.max_tide_station_distance_miles
            else:
                max_distance_miles = max(settings.max_buoy_distance_miles, settings.max_tide_station_distance_miles)

        return [
            StationDistanceResponse(station=match.station, distance_miles=match.distance_miles)
            for match in self.geo_index.nearest(
                point,
                kind=kind,
                limit=limit,
                max_distance_miles=max_distance_miles
            )
        ]

    def get_recommendations(
        self,
        point: GeoPoint,
        kind: StationKind = StationKind.BUOY,
        exposure: Optional[Exposure] = None,
        region: str = "",
        country: str = "",
        limit: Optional[int] = None
    ) -> StationRecommendationResponse:
        """Rank stations for a spot, inferring exposure from region/country when not given."""
        if exposure is None and (region or country):
            exposure = infer_exposure(region, country, point.lat)
            logger.debug(f"Inferred {exposure.value} exposure for '{region}, {country}'")

        return StationRecommendationResponse(
            kind=kind,
            exposure=exposure,
            recommendations=self.ranker.rank_stations(point, exposure=exposure, limit=limit, kind=kind)
        )

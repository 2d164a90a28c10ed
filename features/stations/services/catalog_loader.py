import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from features.common.models.geo_types import GeoPoint, ReferenceStation, StationKind
from core.config import settings

logger = logging.getLogger(__name__)

class StationCatalogLoader:
    """Loads the static buoy and tide station catalogs from JSON files."""

    def __init__(
        self,
        tide_stations_file: Optional[Path] = None,
        buoy_stations_file: Optional[Path] = None
    ):
        self.tide_stations_file = Path(tide_stations_file or settings.tide_stations_file)
        self.buoy_stations_file = Path(buoy_stations_file or settings.buoy_stations_file)

    def load(self) -> List[ReferenceStation]:
        """Load every station from both catalogs."""
        stations = self._load_tide_stations() + self._load_buoys()
        logger.info(f"Loaded station catalog with {len(stations)} stations")
        return stations

    def _read_json(self, path: Path) -> List[Dict[str, Any]]:
        try:
            with open(path) as f:
                return json.load(f)
        except Exception as e:
            logger.error(f"Error reading station catalog {path}: {str(e)}")
            raise

    def _load_tide_stations(self) -> List[ReferenceStation]:
        """CO-OPS format: flat latitude/longitude fields."""
        stations = []
        for station in self._read_json(self.tide_stations_file):
            try:
                stations.append(
                    ReferenceStation(
                        id=station["station_id"],
                        name=station["name"],
                        location=GeoPoint(lat=station["latitude"], lon=station["longitude"]),
                        kind=StationKind.TIDE_STATION,
                        region=station.get("region", "")
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed tide station {self._row_id(station, 'station_id')}: {str(e)}")
        return stations

    def _load_buoys(self) -> List[ReferenceStation]:
        """NDBC format: GeoJSON point, coordinates are [lon, lat]."""
        stations = []
        for station in self._read_json(self.buoy_stations_file):
            try:
                lon, lat = station["location"]["coordinates"][:2]
                stations.append(
                    ReferenceStation(
                        id=station["id"],
                        name=station["name"],
                        location=GeoPoint(lat=lat, lon=lon),
                        kind=StationKind.BUOY,
                        region=station.get("region", "")
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed buoy {self._row_id(station, 'id')}: {str(e)}")
        return stations

    @staticmethod
    def _row_id(row: Any, key: str) -> str:
        return str(row.get(key, "?")) if isinstance(row, dict) else repr(row)

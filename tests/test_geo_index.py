import json
import logging
import math

import pytest

from features.common.models.geo_types import GeoPoint, ReferenceStation, StationKind
from features.common.utils.geo import haversine_miles, initial_bearing, normalize_degrees
from features.stations.services.catalog_loader import StationCatalogLoader
from features.stations.services.geo_index import GeoIndex

# One degree of latitude on a 3959 mile sphere
MILES_PER_DEGREE = 3959.0 * math.pi / 180

def station(station_id: str, lat: float, lon: float, kind: StationKind = StationKind.BUOY) -> ReferenceStation:
    return ReferenceStation(id=station_id, name=station_id, location=GeoPoint(lat=lat, lon=lon), kind=kind)

class TestGeoMath:
    def test_haversine_is_symmetric(self):
        d1 = haversine_miles(32.87, -117.26, 21.3, -157.8)
        d2 = haversine_miles(21.3, -157.8, 32.87, -117.26)
        assert d1 == pytest.approx(d2)

    def test_haversine_identity_is_zero(self):
        assert haversine_miles(40.0, -70.0, 40.0, -70.0) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_miles(0, 0, 1, 0) == pytest.approx(MILES_PER_DEGREE)

    def test_cardinal_bearings(self):
        assert initial_bearing(0, 0, 1, 0) == pytest.approx(0)
        assert initial_bearing(0, 0, 0, 1) == pytest.approx(90)
        assert initial_bearing(0, 0, -1, 0) == pytest.approx(180)
        assert initial_bearing(0, 0, 0, -1) == pytest.approx(270)

    def test_normalize_degrees(self):
        assert normalize_degrees(360) == 0
        assert normalize_degrees(-10) == 350
        assert normalize_degrees(725) == 5

class TestGeoIndex:
    @pytest.fixture
    def origin(self) -> GeoPoint:
        return GeoPoint(lat=30.0, lon=-80.0)

    @pytest.fixture
    def index(self) -> GeoIndex:
        # 5 and 50 miles due north of the origin
        return GeoIndex([
            station("far", 30.0 + 50 / MILES_PER_DEGREE, -80.0),
            station("near", 30.0 + 5 / MILES_PER_DEGREE, -80.0),
        ])

    def test_max_distance_filters_far_station(self, index, origin):
        results = index.nearest(origin, max_distance_miles=10, limit=5)
        assert [r.station.id for r in results] == ["near"]
        assert results[0].distance_miles == pytest.approx(5)

    def test_results_ascend_by_distance(self, index, origin):
        results = index.nearest(origin, limit=5)
        assert [r.station.id for r in results] == ["near", "far"]

    def test_ties_break_by_station_id(self, origin):
        index = GeoIndex([station("b", 31.0, -80.0), station("a", 31.0, -80.0)])
        assert [r.station.id for r in index.nearest(origin, limit=2)] == ["a", "b"]

    def test_limit_truncates(self, index, origin):
        assert len(index.nearest(origin, limit=1)) == 1
        assert index.nearest(origin, limit=0) == []

    def test_kind_filter(self, origin):
        index = GeoIndex([
            station("buoy", 30.1, -80.0),
            station("tide", 30.5, -80.0, kind=StationKind.TIDE_STATION),
        ])
        result = index.nearest_one(origin, kind=StationKind.TIDE_STATION)
        assert result.station.id == "tide"

    def test_empty_catalog_returns_nothing(self, origin):
        assert GeoIndex([]).nearest(origin) == []
        assert GeoIndex([]).nearest_one(origin) is None

    def test_get_station(self, index):
        assert index.get_station("near").id == "near"
        assert index.get_station("near", StationKind.TIDE_STATION) is None
        assert index.get_station("missing") is None

class TestCatalogLoader:
    def test_loads_bundled_catalogs(self):
        stations = StationCatalogLoader().load()
        kinds = {s.kind for s in stations}
        assert kinds == {StationKind.BUOY, StationKind.TIDE_STATION}

        la_jolla = next(s for s in stations if s.id == "9410230")
        assert la_jolla.location.lat == pytest.approx(32.8669)
        assert la_jolla.location.lon == pytest.approx(-117.2571)

    def test_buoy_coordinates_are_lon_lat(self):
        stations = StationCatalogLoader().load()
        galveston = next(s for s in stations if s.id == "42035")
        assert galveston.location.lat == pytest.approx(29.235)
        assert galveston.location.lon == pytest.approx(-94.41)

    def test_missing_file_raises(self, tmp_path):
        loader = StationCatalogLoader(tide_stations_file=tmp_path / "missing.json")
        with pytest.raises(FileNotFoundError):
            loader.load()

    def test_malformed_rows_are_skipped(self, tmp_path, caplog):
        tide_file = tmp_path / "tides.json"
        tide_file.write_text(json.dumps([
            {"station_id": "9410230", "name": "La Jolla", "latitude": 32.8669, "longitude": -117.2571},
            {"station_id": "bad_lat", "name": "Nowhere", "latitude": 132.0, "longitude": -117.0},
            {"station_id": "no_name", "latitude": 32.0, "longitude": -117.0},
        ]))
        buoy_file = tmp_path / "buoys.json"
        buoy_file.write_text(json.dumps([
            {"id": "46225", "name": "Torrey Pines Outer", "location": {"type": "Point", "coordinates": [-117.391, 32.933]}},
            {"id": "no_location", "name": "Lost"},
            {"id": "short", "name": "Short", "location": {"type": "Point", "coordinates": [-117.0]}},
            "not a station",
        ]))

        with caplog.at_level(logging.WARNING):
            stations = StationCatalogLoader(tide_stations_file=tide_file, buoy_stations_file=buoy_file).load()

        assert sorted(s.id for s in stations) == ["46225", "9410230"]
        assert "Skipping malformed tide station bad_lat" in caplog.text
        assert "Skipping malformed buoy no_location" in caplog.text

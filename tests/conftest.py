import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from features.common.exceptions.engine_exceptions import UpstreamError
from features.common.models.geo_types import GeoPoint, ReferenceStation, StationKind
from features.stations.services.geo_index import GeoIndex
from features.tides.models.tide_types import HourlyTide, TidePrediction
from features.tides.services.tide_cache import TideSeriesCache
from features.tides.services.tide_interpolator import TideInterpolator

BASE_TIME = datetime(2024, 6, 1, tzinfo=timezone.utc)

class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

class CountingFetcher:
    """Tide fetcher that records calls and can be told to fail or stall."""

    def __init__(self, predictions: List[TidePrediction]):
        self.predictions = predictions
        self.calls = 0
        self.last_args = None
        self.error: Optional[Exception] = None
        self.delay = 0.0

    async def fetch(self, station_id: str, begin_date: datetime, range_hours: int) -> List[TidePrediction]:
        self.calls += 1
        self.last_args = (station_id, begin_date, range_hours)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.predictions)

class HourlyCountingFetcher(CountingFetcher):
    def __init__(self, predictions: List[TidePrediction], hourly: List[HourlyTide]):
        super().__init__(predictions)
        self.hourly = hourly
        self.hourly_error: Optional[Exception] = None

    async def fetch_hourly(self, station_id: str, begin_date: datetime, range_hours: int) -> List[HourlyTide]:
        if self.hourly_error is not None:
            raise self.hourly_error
        return list(self.hourly)

def make_predictions() -> List[TidePrediction]:
    """Low 0.0ft at 00:00, high 6.0ft at 06:00, low 1.0ft at 12:00, high 5.0ft at 18:00."""
    return [
        TidePrediction(time=BASE_TIME, height_ft=0.0, is_high=False),
        TidePrediction(time=BASE_TIME + timedelta(hours=6), height_ft=6.0, is_high=True),
        TidePrediction(time=BASE_TIME + timedelta(hours=12), height_ft=1.0, is_high=False),
        TidePrediction(time=BASE_TIME + timedelta(hours=18), height_ft=5.0, is_high=True),
    ]

def make_interpolator(fetcher, clock: FakeClock, include_hourly: bool = False) -> TideInterpolator:
    cache = TideSeriesCache(
        ttl=timedelta(hours=1),
        clock=clock,
        namespace=f"test_{uuid.uuid4().hex}"
    )
    return TideInterpolator(fetcher, clock=clock, cache=cache, fetch_timeout=5, include_hourly=include_hourly)

@pytest.fixture
def predictions() -> List[TidePrediction]:
    return make_predictions()

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(BASE_TIME + timedelta(hours=3))

@pytest.fixture
def fetcher(predictions) -> CountingFetcher:
    return CountingFetcher(predictions)

@pytest.fixture
def interpolator(fetcher, clock) -> TideInterpolator:
    return make_interpolator(fetcher, clock)

@pytest.fixture
def failing_upstream() -> UpstreamError:
    return UpstreamError("tide_predictions", "503 Service Unavailable")

@pytest.fixture
def spot_point() -> GeoPoint:
    return GeoPoint(lat=32.8, lon=-117.3)

@pytest.fixture
def geo_index() -> GeoIndex:
    return GeoIndex([
        ReferenceStation(
            id="9410230",
            name="La Jolla",
            location=GeoPoint(lat=32.8669, lon=-117.2571),
            kind=StationKind.TIDE_STATION,
            region="San Diego"
        ),
        ReferenceStation(
            id="46225",
            name="Torrey Pines Outer",
            location=GeoPoint(lat=32.933, lon=-117.391),
            kind=StationKind.BUOY,
            region="San Diego"
        ),
    ])

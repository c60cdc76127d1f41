import math

import pytest

from fogwalk.events import EventLoop, ManualClock
from fogwalk.history import GameStore
from fogwalk.logger import Logger
from fogwalk.models import Location, Street

BASE = (40.0, -3.0)
KM_PER_DEG = 6371.0 * math.pi / 180


def at(north_km: float = 0.0, east_km: float = 0.0, base=BASE) -> tuple[float, float]:
    """Coordinate offset from base by the given kilometres"""
    lat = base[0] + north_km / KM_PER_DEG
    lon = base[1] + east_km / (KM_PER_DEG * math.cos(math.radians(base[0])))
    return (lat, lon)


def location(north_km: float = 0.0, east_km: float = 0.0) -> Location:
    lat, lon = at(north_km, east_km)
    return Location(lat=lat, lon=lon, accuracy=5)


def east_west_street(street_id: str, north_km: float, length_km: float,
                     center_east_km: float = 0.0, name=None) -> Street:
    """Three-vertex street running west to east, centred at (north_km, center_east_km)"""
    half = length_km / 2
    path = [
        at(north_km, center_east_km - half),
        at(north_km, center_east_km),
        at(north_km, center_east_km + half),
    ]
    return Street.create(street_id, name or f"Street {street_id}", "residential", path)


def north_south_street(street_id: str, east_km: float, length_km: float,
                       center_north_km: float = 0.0) -> Street:
    half = length_km / 2
    path = [
        at(center_north_km - half, east_km),
        at(center_north_km, east_km),
        at(center_north_km + half, east_km),
    ]
    return Street.create(street_id, f"Street {street_id}", "footway", path)


class FakeStreetSource:
    """Street source returning a fixed list, recording the bounds it was asked for"""

    name = "fake"

    def __init__(self, streets, error=None):
        self.streets = streets
        self.error = error
        self.requests = []

    def fetch(self, bounds):
        from fogwalk.osm import StreetFetchResult
        self.requests.append(bounds)
        if self.error:
            return StreetFetchResult(source=self.name, error=self.error)
        # Fresh copies so explored flags never leak between loads
        streets = [Street.create(s.id, s.name, s.category, s.path) for s in self.streets]
        return StreetFetchResult(source=self.name, streets=streets)


@pytest.fixture
def clock():
    return ManualClock(start=1000.0)


@pytest.fixture
def loop(clock):
    return EventLoop(clock=clock, sleep=clock.sleep)


@pytest.fixture
def logger():
    return Logger(echo=False, max_entries=500)


@pytest.fixture
def store(tmp_path):
    store = GameStore(str(tmp_path / "state.db"))
    yield store
    store.close()

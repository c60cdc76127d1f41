import pytest

from fogwalk.geo import (
    center_of_path,
    closest_point_on_path,
    distance_km,
    haversine_distance,
    path_length_km,
    retry_with_backoff,
    street_length_km,
    zone_bounds,
)
from fogwalk.models import Location

from conftest import at, east_west_street


def test_distance_is_symmetric_and_zero_for_same_point():
    a = (40.0, -3.0)
    b = (40.01, -3.02)
    assert distance_km(a, b) == pytest.approx(distance_km(b, a))
    assert distance_km(a, a) == 0


def test_distance_accepts_locations_and_tuples():
    loc = Location(lat=40.0, lon=-3.0)
    assert distance_km(loc, at(1.0, 0.0)) == pytest.approx(1.0, rel=1e-3)


def test_antipodal_points_do_not_blow_up():
    d = haversine_distance(0.0, 0.0, 0.0, 180.0)
    assert d == pytest.approx(6371000 * 3.14159265, rel=1e-6)


def test_path_length_sums_segments():
    path = [at(0, 0), at(0.1, 0), at(0.1, 0.2)]
    assert path_length_km(path) == pytest.approx(0.3, rel=1e-3)
    assert path_length_km(path[:1]) == 0


def test_street_length():
    street = east_west_street("a", 0.0, 0.4)
    assert street_length_km(street) == pytest.approx(0.4, rel=1e-3)


def test_closest_point_is_a_vertex():
    path = [at(0, 0), at(0, 0.1), at(0, 0.2)]
    assert closest_point_on_path(path, at(0.01, 0.09)) == path[1]


def test_closest_point_ties_take_first_vertex():
    path = [(0.0, -1.0), (0.0, 1.0)]
    assert closest_point_on_path(path, (0.0, 0.0)) == path[0]


def test_center_of_path_uses_middle_index():
    path = [(1, 1), (2, 2), (3, 3), (4, 4)]
    assert center_of_path(path) == (3, 3)
    assert center_of_path(path[:2]) == (2, 2)


def test_zone_bounds_flat_earth():
    b = zone_bounds((40.0, -3.0), 0.25)
    assert b.north - 40.0 == pytest.approx(0.25 / 111.0)
    assert 40.0 - b.south == pytest.approx(0.25 / 111.0)
    # Longitude span widens away from the equator
    assert b.east - b.west > b.north - b.south
    assert b.contains(40.0, -3.0)


def test_retry_with_backoff_succeeds_after_failures():
    attempts = []
    sleeps = []
    now = [0.0]

    def flaky():
        attempts.append(1)
        return "ok" if len(attempts) == 3 else None

    def fake_sleep(seconds):
        sleeps.append(seconds)
        now[0] += seconds

    result = retry_with_backoff(flaky, max_time=30, initial_delay=1, max_delay=8,
                                sleep=fake_sleep, clock=lambda: now[0])
    assert result == "ok"
    assert sleeps == [1, 2]


def test_retry_with_backoff_gives_up():
    now = [0.0]

    def fake_sleep(seconds):
        now[0] += seconds

    result = retry_with_backoff(lambda: None, max_time=5, initial_delay=1, max_delay=8,
                                sleep=fake_sleep, clock=lambda: now[0])
    assert result is None
    assert now[0] == pytest.approx(5)

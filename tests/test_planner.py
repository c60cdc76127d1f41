import pytest

from fogwalk.geo import street_length_km
from fogwalk.planner import RouteSelector, estimated_minutes

from conftest import at, east_west_street, location, north_south_street


@pytest.fixture
def selector(logger):
    return RouteSelector(logger=logger)


def ids(streets):
    return [s.id for s in streets]


def test_estimated_minutes():
    assert estimated_minutes(0) == 1
    assert estimated_minutes(1000) == 14
    assert estimated_minutes(5000) == 72


def test_empty_candidates(selector):
    assert selector.select([], location(), 1.0) == []
    assert selector.last_total_km == 0.0


def test_seed_is_nearest_street(selector):
    streets = [
        east_west_street("far", 0.3, 0.5),
        east_west_street("near", 0.05, 0.5),
    ]
    result = selector.select(streets, location(), 0.4)
    assert ids(result)[0] == "near"


def test_exact_total_returns_every_candidate(selector):
    # Four parallel 0.25km streets 20m apart
    streets = [east_west_street(f"s{i}", 0.05 + 0.02 * i, 0.25) for i in range(4)]
    assert sum(street_length_km(s) for s in streets) == pytest.approx(1.0, rel=1e-3)
    result = selector.select(streets, location(), 1.0)
    assert ids(result) == ["s0", "s1", "s2", "s3"]
    assert selector.last_total_km >= 0.9


def test_long_single_street_is_still_returned(selector):
    street = east_west_street("long", 0.05, 2.0)
    assert ids(selector.select([street], location(), 0.1)) == ["long"]
    assert selector.last_total_km == pytest.approx(2.0, rel=1e-3)


def test_two_street_scenario_respects_overshoot(selector):
    a = east_west_street("A", 0.05, 0.3)
    b = east_west_street("B", 0.4, 0.3)
    # A (0.3) + B (0.3) + walk between centers (0.35) is well past 1.2 x 0.5
    assert ids(selector.select([a, b], location(), 0.5)) == ["A"]
    assert ids(selector.select([a, b], location(), 1.0)) == ["A", "B"]


def test_overshoot_takes_shorter_street_that_fits(selector):
    seed = east_west_street("seed", 0.05, 0.8)
    big = east_west_street("big", 0.1, 0.8)
    short = north_south_street("short", 0.5, 0.15)
    result = selector.select([seed, big, short], location(), 1.0)
    assert ids(result) == ["seed", "short"]


def test_stops_at_ninety_percent(selector):
    streets = [east_west_street(f"s{i}", 0.05 + 0.01 * i, 0.5) for i in range(5)]
    result = selector.select(streets, location(), 1.0)
    assert ids(result) == ["s0", "s1"]


def test_distant_street_reached_through_global_fallback(selector, logger):
    near = east_west_street("near", 0.05, 0.1)
    distant = east_west_street("distant", 1.5, 0.1)
    result = selector.select([near, distant], location(), 3.0)
    assert ids(result) == ["near", "distant"]
    assert any("local radius" in m for m in logger.messages())


def test_ties_go_to_first_candidate(selector):
    a = east_west_street("first", 0.1, 0.2)
    b = east_west_street("second", 0.1, 0.2)
    assert ids(selector.select([a, b], location(), 0.2)) == ["first"]


def test_estimate_recorded(selector):
    street = east_west_street("a", 0.05, 1.0)
    selector.select([street], location(), 1.0)
    assert selector.last_estimated_minutes == estimated_minutes(selector.last_total_km * 1000)


def test_zero_local_radius_is_respected(logger):
    selector = RouteSelector(logger=logger, local_radius_km=0)
    assert selector.local_radius_km == 0
    streets = [east_west_street("a", 0.05, 0.1), east_west_street("b", 0.1, 0.1)]
    assert ids(selector.select(streets, location(), 3.0)) == ["a", "b"]
    assert any("local radius" in m for m in logger.messages())

import pytest

from fogwalk.config import CONFIG
from fogwalk.zone import ZoneManager

from conftest import location


def test_create_uses_initial_radius():
    zones = ZoneManager()
    zone = zones.create(location())
    assert zone.radius_km == CONFIG["zone_initial_radius_km"]
    assert zone.bounds.contains(zone.center.lat, zone.center.lon)
    assert zones.bounds is zone.bounds


def test_expand_grows_radius_and_bounds():
    zones = ZoneManager()
    before = zones.create(location())
    after = zones.expand()
    assert after.radius_km == pytest.approx(0.5)
    assert after.center == before.center
    assert after.bounds.north > before.bounds.north
    assert after.bounds.west < before.bounds.west


def test_radius_never_shrinks():
    zones = ZoneManager(radius_km=0.75)
    zones.create(location())
    zones.grow_to(0.25)
    assert zones.radius_km == 0.75
    radii = [zones.radius_km]
    for _ in range(5):
        zones.expand()
        radii.append(zones.radius_km)
    assert radii == sorted(radii)


def test_expand_before_create_only_tracks_radius():
    zones = ZoneManager()
    assert zones.expand() is None
    assert zones.radius_km == pytest.approx(0.5)
    assert zones.bounds is None

"""Exploration zone management."""

from typing import Optional

from .config import CONFIG
from .geo import zone_bounds
from .models import Location, Zone


class ZoneManager:
    """Owns the exploration zone and its ever-growing radius"""

    def __init__(self, radius_km: Optional[float] = None, increment_km: Optional[float] = None):
        self.radius_km = radius_km if radius_km is not None else CONFIG["zone_initial_radius_km"]
        self.increment_km = increment_km if increment_km is not None else CONFIG["zone_radius_increment_km"]
        self.zone: Optional[Zone] = None

    def create(self, center: Location) -> Zone:
        """Create the zone around the first location fix"""
        self.zone = Zone(center=center, radius_km=self.radius_km,
                         bounds=zone_bounds(center, self.radius_km))
        return self.zone

    def grow_to(self, radius_km: float) -> Zone:
        """Raise the radius to at least radius_km; never shrinks"""
        if radius_km > self.radius_km:
            self.radius_km = radius_km
        if self.zone:
            self.zone = Zone(center=self.zone.center, radius_km=self.radius_km,
                             bounds=zone_bounds(self.zone.center, self.radius_km))
        return self.zone

    def expand(self) -> Zone:
        """Grow the zone by one increment after it has been completed"""
        return self.grow_to(self.radius_km + self.increment_km)

    @property
    def bounds(self):
        return self.zone.bounds if self.zone else None

"""Data classes for Fog of Walk."""

from dataclasses import dataclass, asdict, field, fields
from enum import Enum
from typing import Optional


class PreconditionError(Exception):
    """An operation was invoked in a state that does not allow it."""


@dataclass
class Location:
    lat: float
    lon: float
    accuracy: Optional[float] = None
    timestamp: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Location":
        return cls(**d)


@dataclass
class Street:
    """A mapped street: immutable geometry plus the explored flag"""
    id: str
    name: str
    category: str
    path: list[tuple[float, float]]
    explored: bool = False

    @classmethod
    def create(cls, street_id, name: Optional[str], category: Optional[str],
               path: list) -> "Street":
        """Build a street, validating the id and the vertex count"""
        if street_id is None or str(street_id) == "":
            raise ValueError("street id is required")
        vertices = [(float(p[0]), float(p[1])) for p in path or []]
        if len(vertices) < 2:
            raise ValueError(f"street {street_id} needs at least 2 vertices, got {len(vertices)}")
        return cls(
            id=str(street_id),
            name=name or "Unnamed street",
            category=category or "unknown",
            path=vertices,
        )

    @classmethod
    def from_osm(cls, element: dict) -> "Street":
        """Build a street from an Overpass way element returned with `out geom`"""
        tags = element.get("tags") or {}
        geometry = element.get("geometry") or []
        return cls.create(
            element.get("id"),
            tags.get("name"),
            tags.get("highway"),
            [(p["lat"], p["lon"]) for p in geometry],
        )


class StreetState(str, Enum):
    """Three-way classification used by renderers"""
    EXPLORED = "explored"
    IN_ROUTE = "in_route"
    UNEXPLORED = "unexplored"


@dataclass
class Bounds:
    north: float
    south: float
    east: float
    west: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Zone:
    """Exploration zone around a center"""
    center: Location
    radius_km: float
    bounds: Bounds

    def to_dict(self) -> dict:
        return {
            "center": {"lat": self.center.lat, "lon": self.center.lon},
            "radius_km": self.radius_km,
            "bounds": self.bounds.to_dict(),
        }


@dataclass
class RoutePoint:
    lat: float
    lon: float
    visited: bool = False


@dataclass
class Route:
    """A stitched route plus the streets it was built from"""
    points: list[RoutePoint]
    street_ids: list[str]
    distance_km: float = 0.0
    estimated_minutes: int = 0
    epoch: int = 0

    @classmethod
    def from_coordinates(cls, coords: list[tuple[float, float]], street_ids: list[str],
                         distance_km: float = 0.0, estimated_minutes: int = 0,
                         epoch: int = 0) -> "Route":
        points = [RoutePoint(lat=c[0], lon=c[1]) for c in coords]
        return cls(points=points, street_ids=list(street_ids), distance_km=distance_km,
                   estimated_minutes=estimated_minutes, epoch=epoch)

    def coordinates(self) -> list[tuple[float, float]]:
        return [(p.lat, p.lon) for p in self.points]

    def length_km(self) -> float:
        """Length of the stitched path including connectors"""
        from .geo import path_length_km
        return path_length_km(self.coordinates())

    @property
    def visited_count(self) -> int:
        return sum(1 for p in self.points if p.visited)


# Field names used by the browser client that first wrote these documents
_LEGACY_KEYS = {
    "routesCompleted": "routes_completed",
    "totalDistanceWalked": "total_distance_walked",
    "streetsExplored": "streets_explored",
    "explorationPercentage": "exploration_percentage",
    "zoneCompleted": "zone_completed",
    "completedRoutes": "completed_routes",
    "visitedStreets": "explored_street_ids",
}


@dataclass
class GameState:
    """Persisted player progress"""
    level: int = 1
    xp: int = 0
    routes_completed: int = 0
    total_distance_walked: float = 0.0  # km
    streets_explored: int = 0
    exploration_percentage: int = 0
    zone_completed: bool = False
    zone_radius_km: float = 0.0  # 0 means "use the configured initial radius"
    badges: set[str] = field(default_factory=set)
    explored_street_ids: set[str] = field(default_factory=set)
    completed_routes: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["badges"] = sorted(self.badges)
        d["explored_street_ids"] = sorted(self.explored_street_ids)
        return d

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "GameState":
        """Load a saved document, filling in fields that older saves lack"""
        state = cls()
        if not d:
            return state
        known = {f.name for f in fields(cls)}
        for key, value in d.items():
            key = _LEGACY_KEYS.get(key, key)
            if key not in known or value is None:
                continue
            setattr(state, key, value)
        # Older saves stored badges as {name: true}
        if isinstance(state.badges, dict):
            state.badges = {k for k, v in state.badges.items() if v}
        state.badges = set(state.badges)
        state.explored_street_ids = {str(s) for s in state.explored_street_ids}
        state.completed_routes = list(state.completed_routes)
        return state

"""Fog of Walk - Explore your neighbourhood one street at a time."""

from .config import CONFIG
from .models import (
    Bounds,
    GameState,
    Location,
    PreconditionError,
    Route,
    RoutePoint,
    Street,
    StreetState,
    Zone,
)
from .logger import Logger
from .geo import (
    haversine_distance,
    distance_km,
    path_length_km,
    closest_point_on_path,
    center_of_path,
    zone_bounds,
    retry_with_backoff,
)
from .catalog import StreetCatalog
from .zone import ZoneManager
from .planner import RouteSelector, estimated_minutes
from .stitcher import RouteStitcher
from .events import EventLoop, ManualClock
from .tracker import ProgressTracker, TrackerState
from .progression import apply_completion, level_for_xp, xp_for_level
from .gps import GPS, FixedLocation, GPSRecorder, GPSPlayback, LocationFailure, PositionWatch, SimulatedWalk
from .osm import OverpassSource, GridSource, fetch_streets
from .history import GameStore
from .audio import Audio
from .debug_gui import DebugServer, WebSocketGPS
from .app import FogOfWalk
from .__main__ import main

__all__ = [
    "CONFIG",
    "Bounds",
    "GameState",
    "Location",
    "PreconditionError",
    "Route",
    "RoutePoint",
    "Street",
    "StreetState",
    "Zone",
    "Logger",
    "haversine_distance",
    "distance_km",
    "path_length_km",
    "closest_point_on_path",
    "center_of_path",
    "zone_bounds",
    "retry_with_backoff",
    "StreetCatalog",
    "ZoneManager",
    "RouteSelector",
    "estimated_minutes",
    "RouteStitcher",
    "EventLoop",
    "ManualClock",
    "ProgressTracker",
    "TrackerState",
    "apply_completion",
    "level_for_xp",
    "xp_for_level",
    "GPS",
    "FixedLocation",
    "GPSRecorder",
    "GPSPlayback",
    "LocationFailure",
    "PositionWatch",
    "SimulatedWalk",
    "OverpassSource",
    "GridSource",
    "fetch_streets",
    "GameStore",
    "Audio",
    "DebugServer",
    "WebSocketGPS",
    "FogOfWalk",
    "main",
]

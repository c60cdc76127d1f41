"""Geographic utility functions."""

import math
import time
from typing import Union

from .models import Bounds, Location

EARTH_RADIUS_M = 6371000
KM_PER_DEGREE_LAT = 111.0

Point = Union[tuple[float, float], list, Location]


def _lat_lon(point: Point) -> tuple[float, float]:
    """Accept (lat, lon) sequences or anything with lat/lon attributes"""
    if hasattr(point, "lat"):
        return point.lat, point.lon
    return point[0], point[1]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters using Haversine formula"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    # Rounding can push antipodal points just past 1
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance_km(a: Point, b: Point) -> float:
    """Great-circle distance between two points in kilometers"""
    lat1, lon1 = _lat_lon(a)
    lat2, lon2 = _lat_lon(b)
    return haversine_distance(lat1, lon1, lat2, lon2) / 1000


def path_length_km(path: list) -> float:
    """Sum of consecutive-vertex distances along a coordinate list"""
    return sum(distance_km(path[i - 1], path[i]) for i in range(1, len(path)))


def street_length_km(street) -> float:
    """Length of a street's polyline in kilometers"""
    return path_length_km(street.path)


def closest_point_on_path(path: list, point: Point) -> tuple[float, float]:
    """Vertex of path nearest to point.

    This is a vertex-level search: the result is always one of the path's
    own coordinates, never a projection onto a segment interior.
    """
    best = None
    best_distance = float("inf")
    for vertex in path:
        d = distance_km(vertex, point)
        if d < best_distance:
            best_distance = d
            best = vertex
    return (best[0], best[1]) if best is not None else None


def center_of_path(path: list) -> tuple[float, float]:
    """Middle vertex of a path, a cheap stand-in for its centroid"""
    vertex = path[len(path) // 2]
    return (vertex[0], vertex[1])


def zone_bounds(center: Point, radius_km: float) -> Bounds:
    """Bounding box around center using a flat-earth approximation"""
    lat, lon = _lat_lon(center)
    lat_delta = radius_km / KM_PER_DEGREE_LAT
    lon_delta = radius_km / (KM_PER_DEGREE_LAT * math.cos(math.radians(lat)))
    return Bounds(
        north=lat + lat_delta,
        south=lat - lat_delta,
        east=lon + lon_delta,
        west=lon - lon_delta,
    )


def retry_with_backoff(func, max_time: float = 30.0, initial_delay: float = 1.0,
                       max_delay: float = 8.0, description: str = "operation",
                       sleep=time.sleep, clock=time.time):
    """Retry a function with exponential backoff.

    Args:
        func: Function that returns a truthy value on success, falsy on failure
        max_time: Maximum total time to retry (seconds)
        initial_delay: Initial delay between retries (seconds)
        max_delay: Maximum delay between retries (seconds)
        description: Description for logging

    Returns:
        The result of func() on success, or None if all retries failed
    """
    start_time = clock()
    delay = initial_delay
    attempt = 1

    while True:
        result = func()
        if result:
            return result

        elapsed = clock() - start_time
        if elapsed >= max_time:
            print(f"Failed to complete {description} after {elapsed:.1f}s ({attempt} attempts)")
            return None

        remaining = max_time - elapsed
        sleep_time = min(delay, remaining, max_delay)
        if sleep_time > 0:
            print(f"Retrying {description} in {sleep_time:.1f}s (attempt {attempt})...")
            sleep(sleep_time)

        delay = min(delay * 2, max_delay)
        attempt += 1

"""Street data sources: Overpass API with disk caching, and a synthetic grid.

Sources are tried in order by fetch_streets(); the grid always succeeds, so
route generation never blocks on network availability.
"""

import hashlib
import json
import os
import time
from dataclasses import dataclass, field
from typing import Optional

import requests

from .config import CONFIG
from .logger import Logger
from .models import Bounds, Street


@dataclass
class StreetFetchResult:
    source: str
    streets: list[Street] = field(default_factory=list)
    error: Optional[str] = None
    # (source, error) for every source tried before this one
    failures: list[tuple[str, str]] = field(default_factory=list)
    fallback: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.streets)


class OverpassSource:
    """Fetch walkable ways from OpenStreetMap via the Overpass API"""

    name = "overpass"

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None,
                 cache_dir: Optional[str] = None, cache_max_age: Optional[float] = None):
        self.url = url or CONFIG["overpass_url"]
        self.timeout = timeout if timeout is not None else CONFIG["street_fetch_timeout"]
        self.cache_dir = cache_dir if cache_dir is not None else CONFIG["osm_cache_dir"]
        self.cache_max_age = cache_max_age if cache_max_age is not None else CONFIG["osm_cache_max_age"]

    def _cache_path(self, bounds: Bounds) -> str:
        """Generate a cache file path for the given bounding box."""
        # Round coordinates to reduce near-duplicate caches
        key = f"{bounds.south:.5f},{bounds.west:.5f},{bounds.north:.5f},{bounds.east:.5f}"
        h = hashlib.md5(key.encode()).hexdigest()[:12]
        return os.path.join(self.cache_dir, f"streets_{h}.json")

    def _load_cache(self, bounds: Bounds) -> Optional[dict]:
        if not self.cache_dir:
            return None
        path = self._cache_path(bounds)
        try:
            age = time.time() - os.path.getmtime(path)
            if age > self.cache_max_age:
                return None
            with open(path) as f:
                cached = json.load(f)
            print(f"Using cached OSM data ({age/3600:.1f}h old)")
            return cached
        except (OSError, json.JSONDecodeError):
            return None

    def _save_cache(self, bounds: Bounds, data: dict):
        if not self.cache_dir:
            return
        os.makedirs(self.cache_dir, exist_ok=True)
        path = self._cache_path(bounds)
        with open(path, "w") as f:
            json.dump(data, f)
        print(f"Cached OSM data to {path}")

    def build_query(self, bounds: Bounds) -> str:
        highways = "|".join(CONFIG["overpass_highways"])
        return f"""
        [out:json][timeout:{int(self.timeout)}];
        (
          way["highway"~"^({highways})$"]
            ({bounds.south},{bounds.west},{bounds.north},{bounds.east});
        );
        out geom;
        """

    @staticmethod
    def parse_elements(data: dict) -> list[Street]:
        """Streets from an Overpass response; malformed ways are skipped"""
        streets = []
        for element in data.get("elements", []):
            if element.get("type", "way") != "way":
                continue
            try:
                streets.append(Street.from_osm(element))
            except (ValueError, KeyError, TypeError):
                continue
        return streets

    def fetch(self, bounds: Bounds) -> StreetFetchResult:
        data = self._load_cache(bounds)
        if data is None:
            print(f"Fetching OSM streets in ({bounds.south:.5f}, {bounds.west:.5f}) - "
                  f"({bounds.north:.5f}, {bounds.east:.5f})...")
            try:
                response = requests.post(self.url, data={"data": self.build_query(bounds)},
                                         timeout=self.timeout)
                response.raise_for_status()
                data = response.json()
            except requests.RequestException as e:
                return StreetFetchResult(source=self.name, error=f"OSM fetch error: {e}")
            except ValueError as e:
                return StreetFetchResult(source=self.name, error=f"Malformed OSM response: {e}")
            if not isinstance(data, dict):
                return StreetFetchResult(source=self.name, error="Malformed OSM response")
            if data.get("elements"):
                self._save_cache(bounds, data)

        streets = self.parse_elements(data)
        if not streets:
            return StreetFetchResult(source=self.name, error="No street geometry in response")
        return StreetFetchResult(source=self.name, streets=streets)


class GridSource:
    """Deterministic grid of horizontal and vertical streets spanning the bounds"""

    name = "grid"

    def __init__(self, spacing_deg: Optional[float] = None):
        self.spacing = spacing_deg if spacing_deg is not None else CONFIG["grid_spacing_deg"]

    def fetch(self, bounds: Bounds) -> StreetFetchResult:
        streets = []
        steps = int((bounds.north - bounds.south) / self.spacing)
        for i in range(steps + 1):
            lat = bounds.south + i * self.spacing
            streets.append(Street.create(
                f"h_{lat:.6f}", f"Horizontal Street {round(lat * 1000)}", "residential",
                [(lat, bounds.west), (lat, bounds.east)],
            ))
        steps = int((bounds.east - bounds.west) / self.spacing)
        for i in range(steps + 1):
            lon = bounds.west + i * self.spacing
            streets.append(Street.create(
                f"v_{lon:.6f}", f"Vertical Street {round(lon * 1000)}", "residential",
                [(bounds.south, lon), (bounds.north, lon)],
            ))
        return StreetFetchResult(source=self.name, streets=streets)


def default_sources(offline: bool = False) -> list:
    """Overpass first, grid as the guaranteed fallback"""
    if offline:
        return [GridSource()]
    return [OverpassSource(), GridSource()]


def fetch_streets(bounds: Bounds, sources: Optional[list] = None) -> StreetFetchResult:
    """Try each source in order; fall through to the grid if all fail.

    Runs on a worker thread, so nothing is logged here. The outcome of each
    source tried is carried on the result for the caller to report.
    """
    sources = sources if sources is not None else default_sources()
    failures = []
    for source in sources:
        result = source.fetch(bounds)
        if result.ok:
            result.failures = failures
            return result
        failures.append((result.source, result.error or "No streets"))

    result = GridSource().fetch(bounds)
    result.failures = failures
    result.fallback = True
    return result


def log_fetch_result(result: StreetFetchResult, logger: Logger):
    for source, error in result.failures:
        logger.log("Street source failed", {"source": source, "error": error})
    if result.fallback:
        logger.log("Using demonstration street grid", {"streets": len(result.streets)})
    else:
        logger.log("Streets loaded", {"source": result.source, "streets": len(result.streets)})

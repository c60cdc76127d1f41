"""Turn an ordered list of streets into one walkable coordinate path."""

from typing import Iterable, Optional

from .config import CONFIG
from .geo import center_of_path, closest_point_on_path, distance_km
from .logger import Logger
from .models import Street

Coord = tuple[float, float]


class RouteStitcher:
    """Stitches streets into a loop that starts and ends at the player"""

    def __init__(self, all_streets: Optional[Iterable[Street]] = None,
                 logger: Optional[Logger] = None):
        # Every street in the zone, searched for connectors between selections
        self.all_streets = list(all_streets or [])
        self.logger = logger
        self.anchor_tolerance_km = CONFIG["anchor_tolerance_km"]
        self.direct_connection_km = CONFIG["direct_connection_km"]
        self.connector_search_km = CONFIG["connector_search_km"]

    def _log(self, message: str, data: Optional[dict] = None):
        if self.logger:
            self.logger.log(message, data)

    @staticmethod
    def oriented_path(street: Street, start: Coord) -> list[Coord]:
        """Street vertices in the order that begins at the end nearer start"""
        path = list(street.path)
        to_first = distance_km(start, path[0])
        to_last = distance_km(start, path[-1])
        if to_first <= to_last:
            return path
        return path[::-1]

    def stitch(self, streets: list[Street], user_location) -> list[Coord]:
        """Build the walking path for streets, anchored at user_location"""
        if not streets:
            return []

        anchor = (user_location.lat, user_location.lon) if hasattr(user_location, "lat") \
            else (user_location[0], user_location[1])
        route: list[Coord] = [anchor]

        entry = closest_point_on_path(streets[0].path, anchor)
        if distance_km(anchor, entry) > self.anchor_tolerance_km:
            route.append(entry)

        for i, street in enumerate(streets):
            path = self.oriented_path(street, route[-1])
            if path[0] == route[-1]:
                path = path[1:]
            route.extend(path)

            if i < len(streets) - 1:
                next_street = streets[i + 1]
                route.extend(self.connect(route[-1], street, next_street))

        if distance_km(route[-1], anchor) > self.anchor_tolerance_km:
            route.append(anchor)

        self._log("Route stitched", {"points": len(route), "streets": len(streets)})
        return route

    def connect(self, from_point: Coord, from_street: Street, to_street: Street) -> list[Coord]:
        """Points leading from the end of one street to the nearest vertex of the next"""
        to_point = closest_point_on_path(to_street.path, from_point)
        gap = distance_km(from_point, to_point)
        if gap < self.direct_connection_km:
            return [to_point]

        bridge = self._find_bridge_street(from_point, to_point,
                                          exclude={from_street.id, to_street.id})
        if bridge:
            bridge_start = closest_point_on_path(bridge.path, from_point)
            bridge_end = closest_point_on_path(bridge.path, to_point)
            self._log("Connector via intermediate street", {
                "from": from_street.id, "to": to_street.id,
                "via": bridge.id, "gap_km": round(gap, 3),
            })
            return [bridge_start, bridge_end, to_point]

        self._log("L-shaped connector synthesized", {
            "from": from_street.id, "to": to_street.id, "gap_km": round(gap, 3),
        })
        return self.l_connector(from_point, to_point)

    def _find_bridge_street(self, from_point: Coord, to_point: Coord,
                            exclude: set[str]) -> Optional[Street]:
        """Street whose middle is near both endpoints, closest in sum"""
        best = None
        best_total = float("inf")
        for street in self.all_streets:
            if street.id in exclude:
                continue
            center = center_of_path(street.path)
            d_from = distance_km(from_point, center)
            d_to = distance_km(to_point, center)
            if d_from < self.connector_search_km and d_to < self.connector_search_km:
                if d_from + d_to < best_total:
                    best_total = d_from + d_to
                    best = street
        return best

    @staticmethod
    def l_connector(from_point: Coord, to_point: Coord) -> list[Coord]:
        """Two axis-aligned legs instead of a diagonal cut"""
        if abs(from_point[0] - to_point[0]) > abs(from_point[1] - to_point[1]):
            # Vertical leg first, then horizontal
            return [(to_point[0], from_point[1]), to_point]
        return [(from_point[0], to_point[1]), to_point]

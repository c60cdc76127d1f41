"""In-memory street catalog for the exploration zone."""

from typing import Iterable, Iterator, Optional

from .geo import center_of_path, distance_km
from .models import Street, StreetState


class StreetCatalog:
    """All streets inside the current zone, tagged explored/unexplored"""

    def __init__(self, streets: Optional[Iterable[Street]] = None):
        self._streets: dict[str, Street] = {}  # street_id -> Street, in load order
        if streets:
            self.load(streets)

    def load(self, streets: Optional[Iterable[Street]]):
        """Replace catalog contents. A source with no geometry leaves it empty."""
        self._streets = {}
        for street in streets or []:
            self._streets[street.id] = street

    def restore_explored(self, street_ids: Iterable[str]) -> int:
        """Re-apply persisted exploration after a reload"""
        return self.mark_explored(street_ids)

    @property
    def streets(self) -> list[Street]:
        return list(self._streets.values())

    def get(self, street_id: str) -> Optional[Street]:
        return self._streets.get(street_id)

    def __len__(self) -> int:
        return len(self._streets)

    def __iter__(self) -> Iterator[Street]:
        return iter(self._streets.values())

    def __bool__(self) -> bool:
        return bool(self._streets)

    def unexplored_within(self, center, radius_km: float) -> list[Street]:
        """Unexplored streets whose middle vertex is closer than radius_km to center"""
        return [
            street for street in self._streets.values()
            if not street.explored
            and distance_km(center, center_of_path(street.path)) < radius_km
        ]

    def route_candidates(self, center, radius_km: float) -> list[Street]:
        """Unexplored nearby streets, or every street once the area is fully explored"""
        nearby = self.unexplored_within(center, radius_km)
        if nearby:
            return nearby
        return self.streets

    def mark_explored(self, street_ids: Iterable[str]) -> int:
        """Flag streets as explored. Returns how many were newly flagged."""
        newly_explored = 0
        for street_id in street_ids:
            street = self._streets.get(str(street_id))
            if street and not street.explored:
                street.explored = True
                newly_explored += 1
        return newly_explored

    def explored_ids(self) -> set[str]:
        return {s.id for s in self._streets.values() if s.explored}

    def exploration_stats(self) -> tuple[int, int, int]:
        """(explored_count, total_count, percentage)"""
        total = len(self._streets)
        explored = sum(1 for s in self._streets.values() if s.explored)
        if total == 0:
            return 0, 0, 0
        return explored, total, round(100 * explored / total)

    def classify(self, route_street_ids: Iterable[str] = ()) -> dict[str, StreetState]:
        """Map each street to explored / in-route / unexplored for rendering"""
        in_route = set(route_street_ids)
        states = {}
        for street in self._streets.values():
            if street.id in in_route:
                states[street.id] = StreetState.IN_ROUTE
            elif street.explored:
                states[street.id] = StreetState.EXPLORED
            else:
                states[street.id] = StreetState.UNEXPLORED
        return states

"""Route selection: pick unexplored streets that add up to a target distance."""

from typing import Optional

from .config import CONFIG
from .geo import center_of_path, distance_km, street_length_km
from .logger import Logger
from .models import Street


def estimated_minutes(distance_meters: float) -> int:
    """Walking time at 5 km/h plus 20% navigation overhead, at least one minute"""
    minutes = round(distance_meters / CONFIG["walking_speed_m_per_min"] * CONFIG["navigation_overhead"])
    return max(1, minutes)


class RouteSelector:
    """Greedy nearest-neighbour street selection with a distance budget"""

    def __init__(self, logger: Optional[Logger] = None,
                 local_radius_km: Optional[float] = None):
        self.logger = logger
        self.local_radius_km = (local_radius_km if local_radius_km is not None
                                else CONFIG["selector_local_radius_km"])
        self.last_total_km: float = 0.0
        self.last_estimated_minutes: int = 0

    def _log(self, message: str, data: Optional[dict] = None):
        if self.logger:
            self.logger.log(message, data)

    @staticmethod
    def _nearest(candidates: list[Street], position, used: set[str],
                 max_km: Optional[float] = None) -> tuple[Optional[Street], float]:
        """Closest unused candidate by middle vertex; first encountered wins ties"""
        best = None
        best_distance = float("inf")
        for street in candidates:
            if street.id in used:
                continue
            d = distance_km(position, center_of_path(street.path))
            if max_km is not None and d >= max_km:
                continue
            if d < best_distance:
                best_distance = d
                best = street
        return best, best_distance

    def _next_street(self, candidates: list[Street], position,
                     used: set[str]) -> tuple[Optional[Street], float]:
        """Nearest unused street within the local radius, else the closest anywhere"""
        street, d = self._nearest(candidates, position, used, max_km=self.local_radius_km)
        if street:
            return street, d
        street, d = self._nearest(candidates, position, used)
        if street:
            self._log("No street within local radius, using closest unused street", {
                "street": street.id, "distance_km": round(d, 3),
            })
        return street, d

    @staticmethod
    def _shorter_street(candidates: list[Street], position, used: set[str],
                        remaining_km: float) -> Optional[Street]:
        """Closest unused street whose own length fits in what is left of the budget"""
        best = None
        best_distance = float("inf")
        for street in candidates:
            if street.id in used:
                continue
            if street_length_km(street) > remaining_km:
                continue
            d = distance_km(position, center_of_path(street.path))
            if d < best_distance:
                best_distance = d
                best = street
        return best

    def select(self, candidates: list[Street], user_location, target_km: float) -> list[Street]:
        """Choose an ordered subset of candidates approximating target_km.

        The seed is the street nearest the user. Each following street is the
        nearest one to the middle of the last pick, and the running total adds
        the street length plus the walk between the two street centers. The
        loop stops at 90% of the target; a pick that would overshoot the
        target by more than 20% is replaced by a short street that still fits,
        or dropped.
        """
        self.last_total_km = 0.0
        self.last_estimated_minutes = 0
        if not candidates:
            self._log("No candidate streets for route")
            return []

        stop_at = target_km * CONFIG["selector_stop_ratio"]
        overshoot_at = target_km * CONFIG["selector_overshoot_ratio"]

        seed, seed_distance = self._nearest(candidates, user_location, set())
        if not seed:
            return []

        selected = [seed]
        used = {seed.id}
        total = street_length_km(seed)
        position = center_of_path(seed.path)
        self._log("Seed street selected", {
            "street": seed.id, "name": seed.name,
            "length_km": round(total, 3), "distance_km": round(seed_distance, 3),
        })

        stop_reason = "target reached"
        while total < stop_at:
            if len(selected) >= len(candidates):
                stop_reason = "candidates exhausted"
                break

            street, walk = self._next_street(candidates, position, used)
            if not street:
                stop_reason = "candidates exhausted"
                break

            length = street_length_km(street)
            if total + length + walk > overshoot_at:
                shorter = self._shorter_street(candidates, position, used, target_km - total)
                if shorter:
                    selected.append(shorter)
                    used.add(shorter.id)
                    total += street_length_km(shorter)
                    position = center_of_path(shorter.path)
                    self._log("Budget exceeded, added shorter street", {
                        "street": shorter.id, "name": shorter.name,
                        "total_km": round(total, 3),
                    })
                    stop_reason = "budget filled with shorter street"
                else:
                    self._log("Budget exceeded, no shorter street fits", {
                        "rejected": street.id, "total_km": round(total, 3),
                    })
                    stop_reason = "budget exceeded"
                break

            selected.append(street)
            used.add(street.id)
            total += length + walk
            position = center_of_path(street.path)
            self._log("Street selected", {
                "street": street.id, "name": street.name,
                "length_km": round(length, 3), "walk_km": round(walk, 3),
                "total_km": round(total, 3),
            })

        self.last_total_km = total
        self.last_estimated_minutes = estimated_minutes(total * 1000)
        self._log("Route selection finished", {
            "streets": len(selected),
            "total_km": round(total, 2),
            "estimated_minutes": self.last_estimated_minutes,
            "reason": stop_reason,
        })
        return selected

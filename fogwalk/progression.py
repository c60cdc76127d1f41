"""Experience, levels, badges and the route completion transaction."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .catalog import StreetCatalog
from .config import CONFIG
from .logger import Logger
from .models import GameState, Route
from .zone import ZoneManager


def level_for_xp(xp: int) -> int:
    """Level = floor(sqrt(xp / 100)) + 1"""
    return math.floor(math.sqrt(max(0, xp) / CONFIG["xp_per_level_unit"])) + 1


def xp_for_level(level: int) -> int:
    """Total xp at which level is reached (inverse of level_for_xp)"""
    return (max(1, level) - 1) ** 2 * CONFIG["xp_per_level_unit"]


@dataclass
class Achievement:
    kind: str  # "badge", "milestone", "level_up", "zone"
    text: str
    badge_id: Optional[str] = None


@dataclass
class CompletionResult:
    xp_gained: int
    newly_explored: int
    explored_count: int
    total_streets: int
    exploration_percentage: int
    distance_km: float
    level: int
    leveled_up: bool
    zone_expanded: bool
    achievements: list[Achievement] = field(default_factory=list)


def _award(state: GameState, table: list, value: float, achievements: list[Achievement]):
    """Award every badge in table whose threshold value has reached"""
    for badge_id, threshold, text in table:
        if value >= threshold and badge_id not in state.badges:
            state.badges.add(badge_id)
            achievements.append(Achievement(kind="badge", text=text, badge_id=badge_id))


def evaluate_badges(state: GameState, explored_count: int,
                    exploration_percentage: int) -> list[Achievement]:
    """Badges newly earned by state. Each badge is granted at most once."""
    achievements: list[Achievement] = []
    _award(state, CONFIG["route_badges"], state.routes_completed, achievements)
    _award(state, CONFIG["exploration_badges"], exploration_percentage, achievements)
    _award(state, CONFIG["level_badges"], state.level, achievements)
    _award(state, CONFIG["street_badges"], explored_count, achievements)
    _award(state, CONFIG["distance_badges"], state.total_distance_walked, achievements)

    interval = CONFIG["route_milestone_interval"]
    if state.routes_completed > 0 and state.routes_completed % interval == 0:
        achievements.append(Achievement(
            kind="milestone",
            text=f"MILESTONE - {state.routes_completed} missions milestone reached",
        ))
    return achievements


def apply_completion(state: GameState, catalog: StreetCatalog, zones: ZoneManager,
                     route: Route, logger: Optional[Logger] = None) -> CompletionResult:
    """Credit a completed route: exploration, xp, level, zone bonus and badges.

    Mutates state, catalog and zones; the caller persists state afterwards.
    """
    newly_explored = catalog.mark_explored(route.street_ids)
    state.explored_street_ids.update(route.street_ids)
    explored_count, total_streets, percentage = catalog.exploration_stats()
    route_distance = route.length_km()
    old_level = state.level

    xp_gained = CONFIG["route_xp"]
    state.xp += CONFIG["route_xp"]
    state.routes_completed += 1
    state.streets_explored = explored_count
    state.exploration_percentage = percentage
    state.total_distance_walked += route_distance
    state.completed_routes.append({
        "date": datetime.now().isoformat(),
        "points": route.visited_count,
        "total_points": len(route.points),
        "streets_explored": len(route.street_ids),
        "exploration_percentage": percentage,
        "distance_km": round(route_distance, 3),
    })
    state.level = level_for_xp(state.xp)

    achievements: list[Achievement] = []
    zone_expanded = False
    if percentage >= CONFIG["zone_completion_percentage"] and not state.zone_completed:
        state.xp += CONFIG["zone_bonus_xp"]
        xp_gained += CONFIG["zone_bonus_xp"]
        state.zone_completed = True
        state.level = level_for_xp(state.xp)
        zones.expand()
        state.zone_radius_km = zones.radius_km
        zone_expanded = True
        achievements.append(Achievement(kind="zone", text=f"Zone {percentage}% explored! +{CONFIG['zone_bonus_xp']} XP"))
        if logger:
            logger.log("Zone completed, expanding", {
                "percentage": percentage, "radius_km": zones.radius_km,
            })

    leveled_up = state.level > old_level
    if leveled_up:
        achievements.append(Achievement(kind="level_up", text=f"Level {state.level} reached!"))

    achievements.extend(evaluate_badges(state, explored_count, percentage))

    if logger:
        logger.log("Route completed", {
            "xp": state.xp, "level": state.level,
            "routes_completed": state.routes_completed,
            "newly_explored": newly_explored,
            "explored": f"{explored_count}/{total_streets}",
        })
        for achievement in achievements:
            logger.log(f"Achievement: {achievement.text}")

    return CompletionResult(
        xp_gained=xp_gained,
        newly_explored=newly_explored,
        explored_count=explored_count,
        total_streets=total_streets,
        exploration_percentage=percentage,
        distance_km=route_distance,
        level=state.level,
        leveled_up=leveled_up,
        zone_expanded=zone_expanded,
        achievements=achievements,
    )

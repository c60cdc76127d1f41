"""Progress tracking against the active route.

State machine:

    IDLE --start()--> ACTIVE --progress >= 90%--> AUTO_COMPLETING
    AUTO_COMPLETING --delay elapsed--> COMPLETED --reset()--> IDLE

Position samples and the auto-complete timer carry the epoch of the route
they were issued for; anything tagged with another epoch is ignored.
"""

from enum import Enum
from typing import Callable, Optional

from .config import CONFIG
from .events import EventLoop, ScheduledCall
from .geo import distance_km
from .logger import Logger
from .models import Location, PreconditionError, Route


class TrackerState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    AUTO_COMPLETING = "auto_completing"
    COMPLETED = "completed"


class ProgressTracker:
    """Marks route points visited and fires completion at the threshold"""

    def __init__(self, loop: EventLoop, on_complete: Optional[Callable[[Route], None]] = None,
                 logger: Optional[Logger] = None):
        self.loop = loop
        self.on_complete = on_complete
        self.logger = logger
        self.route: Optional[Route] = None
        self.state = TrackerState.IDLE
        self.visited_count = 0
        self.threshold_km = CONFIG["proximity_threshold_km"]
        self.complete_at = CONFIG["auto_complete_progress"]
        self.complete_delay = CONFIG["auto_complete_delay"]
        self._timer: Optional[ScheduledCall] = None

    def _log(self, message: str, data: Optional[dict] = None):
        if self.logger:
            self.logger.log(message, data)

    @property
    def epoch(self) -> Optional[int]:
        return self.route.epoch if self.route else None

    @property
    def progress(self) -> float:
        if not self.route or not self.route.points:
            return 0.0
        return self.visited_count / len(self.route.points)

    @property
    def progress_percentage(self) -> int:
        return round(self.progress * 100)

    def load(self, route: Route):
        """Attach a freshly generated route, discarding any previous one"""
        self._cancel_timer()
        self.route = route
        self.state = TrackerState.IDLE
        self.visited_count = 0

    def start(self):
        """Begin a walk or simulation on the loaded route"""
        if not self.route or not self.route.points:
            raise PreconditionError("No route loaded; generate a route first")
        if self.state != TrackerState.IDLE:
            raise PreconditionError(f"Cannot start a walk while tracker is {self.state.value}")
        for point in self.route.points:
            point.visited = False
        self.visited_count = 0
        self.state = TrackerState.ACTIVE
        self._log("Tracking started", {"points": len(self.route.points), "epoch": self.route.epoch})

    def on_position(self, location: Location, epoch: int) -> float:
        """Consume a position sample. Returns the progress fraction."""
        if self.route is None or epoch != self.route.epoch:
            return self.progress
        if self.state != TrackerState.ACTIVE:
            return self.progress

        newly_visited = 0
        for point in self.route.points:
            if point.visited:
                continue
            if distance_km(location, point) < self.threshold_km:
                point.visited = True
                newly_visited += 1
        self.visited_count += newly_visited

        if newly_visited:
            self._log("Route points visited", {
                "new": newly_visited,
                "visited": self.visited_count,
                "total": len(self.route.points),
                "progress": self.progress_percentage,
            })

        if self.progress >= self.complete_at:
            self.state = TrackerState.AUTO_COMPLETING
            self._log("Route mostly complete, auto-completing", {"progress": self.progress_percentage})
            self._timer = self.loop.call_later(self.complete_delay, self.fire_auto_complete,
                                               self.route.epoch)
        return self.progress

    def fire_auto_complete(self, epoch: int):
        """Timer callback: complete the route unless it was superseded meanwhile"""
        self._timer = None
        if self.route is None or epoch != self.route.epoch:
            return
        if self.state != TrackerState.AUTO_COMPLETING:
            return
        self.state = TrackerState.COMPLETED
        if self.on_complete:
            self.on_complete(self.route)

    def reset(self):
        """Return to idle and drop the finished route"""
        self._cancel_timer()
        self.route = None
        self.visited_count = 0
        self.state = TrackerState.IDLE

    def _cancel_timer(self):
        if self._timer:
            self._timer.cancel()
            self._timer = None

"""Main Fog of Walk application."""

import time
from typing import Callable, Optional

from .audio import Audio
from .catalog import StreetCatalog
from .config import CONFIG
from .debug_gui import ClickWatch, DebugServer, WebSocketGPS
from .events import EventLoop
from .geo import retry_with_backoff, street_length_km
from .gps import GPS, GPSPlayback, GPSRecorder, LocationFailure, PositionWatch, SimulatedWalk
from .history import GameStore
from .logger import Logger
from .models import GameState, Location, PreconditionError, Route
from .osm import GridSource, StreetFetchResult, default_sources, fetch_streets, log_fetch_result
from .planner import RouteSelector
from .progression import CompletionResult, apply_completion, xp_for_level
from .stitcher import RouteStitcher
from .tracker import ProgressTracker, TrackerState
from .zone import ZoneManager


class FogOfWalk:
    """One play session: zone, streets, route, tracker and game state.

    Every mutation happens on self.loop. Street fetches run on a worker
    thread and come back through the loop's inbox.
    """

    def __init__(self, store: Optional[GameStore] = None, location_source=None,
                 street_sources: Optional[list] = None, loop: Optional[EventLoop] = None,
                 logger: Optional[Logger] = None, audio: Optional[Audio] = None,
                 debug_server: Optional[DebugServer] = None):
        self.loop = loop or EventLoop()
        self.debug_server = debug_server
        log_callback = debug_server.send_log if debug_server else None
        self.logger = logger or Logger(callback=log_callback)
        self.store = store or GameStore()
        self.location_source = location_source or GPS()
        self.street_sources = street_sources if street_sources is not None else default_sources()
        self.audio = audio or Audio(enabled=False)

        self.state: GameState = self.store.load()
        self.catalog = StreetCatalog()
        self.zones = ZoneManager(radius_km=self.state.zone_radius_km or None)
        self.selector = RouteSelector(logger=self.logger)
        self.stitcher = RouteStitcher(logger=self.logger)
        self.tracker = ProgressTracker(self.loop, on_complete=self._on_route_completed,
                                       logger=self.logger)

        self.location: Optional[Location] = None
        self.route: Optional[Route] = None
        self.epoch = 0
        self.subscription = None
        self.streets_loading = False
        self.streets_loaded = False
        self._load_seq = 0
        self._load_timer = None
        self.last_result: Optional[CompletionResult] = None
        self.last_error: Optional[str] = None

        if debug_server:
            debug_server.on_command = lambda name, data: self.loop.post(self.handle_command, name, data)

    # Setup

    def locate(self, max_time: float = 0.0) -> Optional[Location]:
        """Single position request, retried with backoff for up to max_time seconds"""
        def attempt():
            location = self.location_source.get_location(timeout=CONFIG["gps_fix_timeout"])
            if not location:
                self._on_location_error(getattr(self.location_source, "last_failure", None))
            return location

        location = retry_with_backoff(attempt, max_time=max_time, initial_delay=1.0,
                                      max_delay=8.0, description="GPS fix")
        if location:
            self.location = location
            self.last_error = None
            self.logger.log("Location acquired", {
                "lat": location.lat, "lon": location.lon, "accuracy": location.accuracy,
            })
            self.publish()
        return location

    def _on_location_error(self, failure: Optional[LocationFailure]):
        message = failure.message if failure else "No position available."
        self.last_error = message
        self.logger.log("Location error", {"reason": failure.value if failure else None,
                                           "message": message})

    def create_zone(self, location: Optional[Location] = None):
        """Create the exploration zone around location (default: the last fix)"""
        center = location or self.location
        if center is None:
            raise PreconditionError("No location yet; cannot create a zone")
        zone = self.zones.create(center)
        self.logger.log("Zone created", zone.to_dict())
        self.publish()
        return zone

    def load_streets(self, on_loaded: Optional[Callable[[StreetFetchResult], None]] = None):
        """Fetch streets for the zone on a worker thread"""
        if self.zones.zone is None:
            raise PreconditionError("No zone yet; cannot load streets")
        bounds = self.zones.bounds
        sources = self.street_sources
        self._load_seq += 1
        seq = self._load_seq
        self.streets_loading = True
        self.streets_loaded = False
        self._cancel_load_timer()

        def done(result: StreetFetchResult):
            if seq != self._load_seq or not self.streets_loading:
                self.logger.log("Discarding late street result", {"source": result.source})
                return
            self._on_streets_loaded(result)
            if on_loaded:
                on_loaded(result)

        def failed(error: Exception):
            if seq != self._load_seq or not self.streets_loading:
                return
            self.logger.log("Street fetch failed", {"error": str(error)})
            result = GridSource().fetch(bounds)
            result.fallback = True
            done(result)

        def timed_out():
            self._load_timer = None
            if seq != self._load_seq or not self.streets_loading:
                return
            self.logger.log("Street fetch timed out, using grid", {
                "timeout": CONFIG["street_load_timeout"],
            })
            result = GridSource().fetch(bounds)
            result.fallback = True
            done(result)

        self._load_timer = self.loop.call_later(CONFIG["street_load_timeout"], timed_out)
        self.loop.run_in_thread(lambda: fetch_streets(bounds, sources), done, on_error=failed)

    def _cancel_load_timer(self):
        if self._load_timer:
            self._load_timer.cancel()
            self._load_timer = None

    def _on_streets_loaded(self, result: StreetFetchResult):
        self._cancel_load_timer()
        log_fetch_result(result, self.logger)
        self.catalog.load(result.streets)
        restored = self.catalog.restore_explored(self.state.explored_street_ids)
        self.stitcher.all_streets = self.catalog.streets
        explored, total, percentage = self.catalog.exploration_stats()
        self.state.streets_explored = explored
        self.state.exploration_percentage = percentage
        # The expanded zone is a fresh zone and may earn the bonus again
        if self.state.zone_completed:
            self.state.zone_completed = False
            self.store.save(self.state)
        self.streets_loading = False
        self.streets_loaded = True
        self.logger.log("Catalog ready", {
            "source": result.source, "streets": total,
            "restored_explored": restored, "exploration": percentage,
        })
        self.publish()

    # Routes

    def generate_route(self, target_km: Optional[float] = None) -> Route:
        """Select and stitch a new route, superseding any walk in progress"""
        if target_km is None:
            target_km = CONFIG["default_walk_distance_km"]
        if target_km <= 0:
            raise ValueError(f"Target distance must be positive, got {target_km}")
        if self.location is None:
            raise PreconditionError("No location yet; acquire a GPS fix first")
        if self.zones.zone is None:
            raise PreconditionError("No exploration zone yet")
        if not self.catalog:
            raise PreconditionError("No streets loaded for the zone yet")

        self.epoch += 1
        self._cancel_subscription()

        candidates = self.catalog.route_candidates(self.location, self.zones.radius_km)
        self.logger.log("Generating route", {
            "target_km": target_km, "candidates": len(candidates), "epoch": self.epoch,
        })
        streets = self.selector.select(candidates, self.location, target_km)
        coords = self.stitcher.stitch(streets, self.location)
        route = Route.from_coordinates(
            coords, [s.id for s in streets],
            distance_km=self.selector.last_total_km,
            estimated_minutes=self.selector.last_estimated_minutes,
            epoch=self.epoch,
        )
        self.route = route
        self.tracker.load(route)
        self.logger.log("Route ready", {
            "streets": len(streets), "points": len(route.points),
            "distance_km": round(route.distance_km, 2),
            "estimated_minutes": route.estimated_minutes,
        })
        self.publish()
        return route

    def _position_handler(self) -> Callable[[Location], None]:
        epoch = self.epoch
        return lambda location: self._on_position(location, epoch)

    def start_walk(self):
        """Track the live location source against the route"""
        self.tracker.start()
        handler = self._position_handler()
        if isinstance(self.location_source, WebSocketGPS) and self.debug_server:
            self.subscription = ClickWatch(self.loop, self.debug_server, handler).start()
        else:
            self.subscription = PositionWatch(self.loop, self.location_source, handler,
                                              on_error=self._on_location_error).start()
        self.audio.speak(f"Mission started. {self.route.estimated_minutes} minutes.")

    def start_simulation(self, interval: Optional[float] = None):
        """Walk the route virtually, one route point per tick"""
        self.tracker.start()
        self.subscription = SimulatedWalk(self.loop, self.route.points,
                                          self._position_handler(), interval=interval).start()
        self.logger.log("Simulation started", {"points": len(self.route.points)})

    def _cancel_subscription(self):
        if self.subscription:
            self.subscription.cancel()
            self.subscription = None

    def _on_position(self, location: Location, epoch: int):
        if epoch != self.epoch:
            return
        self.location = location
        self.tracker.on_position(location, epoch)
        self.publish()

    def _on_route_completed(self, route: Route):
        self._cancel_subscription()
        result = apply_completion(self.state, self.catalog, self.zones, route, self.logger)
        self.store.save(self.state)
        self.last_result = result

        self.audio.speak(f"Mission complete. Plus {result.xp_gained} XP.")
        for achievement in result.achievements:
            self.audio.speak(achievement.text)

        if result.zone_expanded:
            self.load_streets()
        self.publish()

    def reset_for_next_route(self):
        """Completed -> Idle: drop the finished route"""
        self._cancel_subscription()
        self.tracker.reset()
        self.route = None
        self.publish()

    # Commands from the debug GUI

    def handle_command(self, name: str, data: Optional[dict] = None):
        data = data or {}
        try:
            if name == "generate":
                if self.tracker.state == TrackerState.COMPLETED:
                    self.reset_for_next_route()
                self.generate_route(data.get("distance_km"))
            elif name == "walk":
                self.start_walk()
            elif name == "simulate":
                self.start_simulation()
            elif name == "next":
                self.reset_for_next_route()
            else:
                self.logger.log("Unknown command", {"name": name})
        except (PreconditionError, ValueError) as e:
            self.logger.log("Command rejected", {"name": name, "error": str(e)})

    # Display

    def snapshot(self) -> dict:
        """Everything a renderer needs to draw the current state"""
        route_ids = self.route.street_ids if self.route else []
        states = self.catalog.classify(route_ids)
        explored, total, percentage = self.catalog.exploration_stats()
        next_level_xp = xp_for_level(self.state.level + 1)
        return {
            "location": {"lat": self.location.lat, "lon": self.location.lon} if self.location else None,
            "zone": self.zones.zone.to_dict() if self.zones.zone else None,
            "streets": [
                {"id": s.id, "name": s.name, "category": s.category,
                 "path": [list(p) for p in s.path], "state": states[s.id].value}
                for s in self.catalog
            ],
            "route": [[p.lat, p.lon, p.visited] for p in self.route.points] if self.route else [],
            "route_streets": list(route_ids),
            "progress": self.tracker.progress_percentage,
            "tracker_state": self.tracker.state.value,
            "distance_km": round(self.route.distance_km, 3) if self.route else 0.0,
            "estimated_minutes": self.route.estimated_minutes if self.route else 0,
            "exploration": {"explored": explored, "total": total, "percentage": percentage},
            "game": {
                "level": self.state.level,
                "xp": self.state.xp,
                "next_level_xp": next_level_xp,
                "xp_to_next_level": next_level_xp - self.state.xp,
                "routes_completed": self.state.routes_completed,
                "total_distance_walked": round(self.state.total_distance_walked, 3),
                "badges": sorted(self.state.badges),
                "zone_radius_km": self.zones.radius_km,
            },
            "error": self.last_error,
            "log": list(self.logger.entries),
        }

    def publish(self):
        if self.debug_server:
            self.debug_server.send_snapshot(self.snapshot())

    def display_route_preview(self):
        """Print the selected streets and route totals"""
        if not self.route:
            print("No route to preview")
            return

        print("\n" + "=" * 60)
        print("MISSION PREVIEW")
        print("=" * 60)
        print(f"\nStreets: {len(self.route.street_ids)}")
        print(f"Route points: {len(self.route.points)}")
        print(f"Distance: {self.route.distance_km:.2f}km (path {self.route.length_km():.2f}km)")
        print(f"Estimated time: {self.route.estimated_minutes} min")

        print("\n" + "-" * 60)
        for street_id in self.route.street_ids:
            street = self.catalog.get(street_id)
            if street:
                print(f"  {street.name:<40} {street_length_km(street) * 1000:>6.0f}m")
        explored, total, percentage = self.catalog.exploration_stats()
        print("-" * 60)
        print(f"Zone explored: {explored}/{total} streets ({percentage}%)")
        print("=" * 60)

    # CLI driver

    def run(self, target_km: float, simulate: bool = False, preview: bool = False,
            html_output: Optional[str] = None) -> Optional[CompletionResult]:
        """Locate, plan and walk one route from the command line"""
        print("\n=== Fog of Walk ===")
        print(f"Target distance: {target_km}km")
        print(f"Level {self.state.level}, {self.state.xp} XP, "
              f"{self.state.routes_completed} missions completed")
        if preview:
            print("Mode: PREVIEW")
        elif simulate:
            print("Mode: SIMULATION")
        else:
            if isinstance(self.location_source, GPSPlayback):
                print(f"Playback mode: {self.location_source.speed}x speed")
            print("Press Ctrl+C to stop")
        print()

        start_time = time.time()
        try:
            if not self.locate(max_time=CONFIG["gps_fix_max_time"]):
                print(f"Could not get GPS location. {self.last_error or ''}")
                self.audio.speak("Could not get GPS location")
                return None
            print(f"Location: {self.location.lat:.5f}, {self.location.lon:.5f}")

            self.create_zone()
            self.load_streets()
            # Bounded by the street load timer, which falls back to the grid
            if not self.loop.run_until(lambda: self.streets_loaded):
                print("Could not load streets")
                return None

            self.generate_route(target_km)
            self.display_route_preview()
            if html_output:
                from .visualize import save_map
                save_map(self.snapshot(), html_output)

            if preview:
                return None

            if simulate:
                self.start_simulation()
            else:
                self.start_walk()

            self.loop.run_until(lambda: self.tracker.state == TrackerState.COMPLETED)
            if self.tracker.state != TrackerState.COMPLETED:
                print("\nPosition feed ended before the mission was complete")
                self.logger.log("Position feed ended", {"progress": self.tracker.progress_percentage})
                return None

            # Zone expansion reloads streets; let it land before exit
            self.loop.run_until(lambda: not self.streets_loading)
            self.print_summary(self.last_result)
            return self.last_result

        except KeyboardInterrupt:
            print("\nWalk interrupted")
            self.audio.speak("Walk ended")
            self.logger.log("Walk interrupted by user", {"progress": self.tracker.progress_percentage})
            return None
        finally:
            self._cancel_subscription()
            if isinstance(self.location_source, GPSRecorder):
                self.location_source.save()
            self.logger.log("Session summary", {
                "duration": round(time.time() - start_time, 1),
                "progress": self.tracker.progress_percentage,
            })

    def serve(self, target_km: float):
        """Interactive session driven by the debug GUI until Ctrl+C"""
        print("Click the map to set your location")
        try:
            if self.locate(max_time=CONFIG["gps_fix_max_time"]):
                self._begin_session(target_km)
            else:
                self.await_first_fix(target_km)
            self.loop.run_forever()
        except KeyboardInterrupt:
            print("\nDebug session ended")
        finally:
            self._cancel_subscription()

    def _begin_session(self, target_km: float):
        self.create_zone()
        self.load_streets(on_loaded=lambda result: self.handle_command(
            "generate", {"distance_km": target_km}))

    def await_first_fix(self, target_km: float):
        """Start the session from the first map click instead of a GPS fix"""
        if not self.debug_server:
            raise PreconditionError("No debug GUI to take a location from")
        self.debug_server.on_location = lambda location: self.loop.post(
            self._on_first_fix, location, target_km)

    def _on_first_fix(self, location: Location, target_km: float):
        if self.location is not None:
            return
        self.debug_server.on_location = None
        self.location = location
        self.last_error = None
        self.logger.log("Location acquired", {"lat": location.lat, "lon": location.lon})
        self._begin_session(target_km)

    @staticmethod
    def print_summary(result: Optional[CompletionResult]):
        if not result:
            return
        print("\nMission complete!")
        print(f"  XP gained: {result.xp_gained}")
        print(f"  Level: {result.level}{' (up!)' if result.leveled_up else ''}")
        print(f"  Distance: {result.distance_km:.2f}km")
        print(f"  Streets explored: {result.explored_count}/{result.total_streets} "
              f"({result.exploration_percentage}%)")
        if result.zone_expanded:
            print("  Zone expanded!")
        for achievement in result.achievements:
            print(f"  * {achievement.text}")

    def close(self):
        self._cancel_subscription()
        if self.debug_server:
            self.debug_server.stop()
        self.store.close()
        self.logger.close()

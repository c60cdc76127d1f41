"""Location sources, GPS recording/playback and position subscriptions."""

import json
import subprocess
import time
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .config import CONFIG
from .events import EventLoop, ScheduledCall
from .models import Location, RoutePoint


class LocationFailure(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self]


_FAILURE_MESSAGES = {
    LocationFailure.PERMISSION_DENIED:
        "Location permission denied. Allow location access for Termux:API and try again.",
    LocationFailure.POSITION_UNAVAILABLE:
        "Position unavailable. Check that GPS is enabled and you have a clear view of the sky.",
    LocationFailure.TIMEOUT:
        "Timed out waiting for a GPS fix. Move outdoors and try again.",
}


class GPS:
    """GPS access via Termux API"""

    def __init__(self):
        self.last_location: Optional[Location] = None
        self.last_failure: Optional[LocationFailure] = None
        self.consecutive_failures = 0

    def _fail(self, reason: LocationFailure) -> None:
        self.consecutive_failures += 1
        self.last_failure = reason
        return None

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        """Get current location using termux-location"""
        try:
            result = subprocess.run(
                ["termux-location", "-p", "gps", "-r", "once"],
                capture_output=True,
                text=True,
                timeout=timeout
            )

            if result.returncode != 0:
                error_msg = result.stderr.strip().lower() if result.stderr else ""
                if "permission" in error_msg:
                    return self._fail(LocationFailure.PERMISSION_DENIED)
                return self._fail(LocationFailure.POSITION_UNAVAILABLE)

            if not result.stdout or not result.stdout.strip():
                return self._fail(LocationFailure.POSITION_UNAVAILABLE)

            data = json.loads(result.stdout)
            location = Location(
                lat=data["latitude"],
                lon=data["longitude"],
                accuracy=data.get("accuracy"),
                timestamp=time.time()
            )
            self.last_location = location
            self.last_failure = None
            self.consecutive_failures = 0
            return location

        except subprocess.TimeoutExpired:
            return self._fail(LocationFailure.TIMEOUT)
        except (json.JSONDecodeError, KeyError):
            return self._fail(LocationFailure.POSITION_UNAVAILABLE)
        except FileNotFoundError:
            return self._fail(LocationFailure.POSITION_UNAVAILABLE)

    def get_status(self) -> str:
        """Get GPS status string"""
        if self.consecutive_failures == 0:
            acc = f", accuracy {self.last_location.accuracy:.0f}m" if self.last_location and self.last_location.accuracy else ""
            return f"GPS OK{acc}"
        reason = self.last_failure.message if self.last_failure else "unknown error"
        return f"GPS: {self.consecutive_failures} consecutive failures. {reason}"


class FixedLocation:
    """Location source pinned to a coordinate (testing without GPS)"""

    def __init__(self, lat: float, lon: float):
        self.location = Location(lat=lat, lon=lon, accuracy=0)
        self.last_location: Optional[Location] = None
        self.last_failure: Optional[LocationFailure] = None
        self.consecutive_failures = 0

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        self.last_location = Location(lat=self.location.lat, lon=self.location.lon,
                                      accuracy=0, timestamp=time.time())
        return self.last_location

    def get_status(self) -> str:
        return f"Fixed location ({self.location.lat:.5f}, {self.location.lon:.5f})"


class GPSRecorder:
    """Records GPS trace to file"""

    def __init__(self, gps, record_path: str):
        self.gps = gps
        self.record_path = record_path
        self.trace: list[dict] = []
        self.start_time = time.time()

    @property
    def last_failure(self) -> Optional[LocationFailure]:
        return self.gps.last_failure

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        """Get location and record it"""
        location = self.gps.get_location(timeout)

        # Record even failed attempts
        entry = {
            "elapsed": time.time() - self.start_time,
            "timestamp": time.time(),
            "location": location.to_dict() if location else None,
            "status": self.gps.get_status()
        }
        self.trace.append(entry)

        return location

    def get_status(self) -> str:
        return self.gps.get_status()

    def save(self):
        """Save trace to file"""
        with open(self.record_path, "w") as f:
            json.dump({
                "recorded_at": datetime.now().isoformat(),
                "trace": self.trace
            }, f, indent=2)
        print(f"GPS trace saved to {self.record_path} ({len(self.trace)} entries)")


class GPSPlayback:
    """Plays back GPS trace from file"""

    def __init__(self, playback_path: str, speed: float = 1.0):
        self.playback_path = playback_path
        self.speed = speed
        self.trace: list[dict] = []
        self.index = 0
        self.last_location: Optional[Location] = None
        self.last_failure: Optional[LocationFailure] = None
        self.consecutive_failures = 0

        # Load trace
        with open(playback_path) as f:
            data = json.load(f)
            self.trace = data["trace"]
        print(f"Loaded GPS trace from {playback_path} ({len(self.trace)} entries)")

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        """Get next location from trace sequentially"""
        if self.index >= len(self.trace):
            self.last_failure = LocationFailure.POSITION_UNAVAILABLE
            return None

        entry = self.trace[self.index]
        self.index += 1

        if entry["location"]:
            location = Location.from_dict(entry["location"])
            self.last_location = location
            self.last_failure = None
            self.consecutive_failures = 0
            return location
        else:
            self.consecutive_failures += 1
            self.last_failure = LocationFailure.POSITION_UNAVAILABLE
            return None

    def get_poll_interval(self) -> float:
        """Get the interval to wait between polls based on trace timing and speed"""
        if self.index <= 0 or self.index >= len(self.trace):
            return CONFIG["gps_poll_interval"] / self.speed

        # Calculate time delta between current and previous entry
        prev_elapsed = self.trace[self.index - 1].get("elapsed", 0)
        curr_elapsed = self.trace[self.index].get("elapsed", 0)
        delta = curr_elapsed - prev_elapsed

        # Apply speed multiplier and clamp to reasonable range
        interval = delta / self.speed
        return max(0.1, min(interval, 5.0))

    def is_finished(self) -> bool:
        """Check if playback is complete"""
        return self.index >= len(self.trace)

    def get_status(self) -> str:
        progress = f"{self.index}/{len(self.trace)}"
        if self.consecutive_failures == 0:
            return f"Playback OK ({progress})"
        else:
            return f"Playback: {self.consecutive_failures} failures ({progress})"


class PositionWatch:
    """Continuous subscription: polls a location source on the event loop"""

    def __init__(self, loop: EventLoop, source, handler: Callable[[Location], None],
                 interval: Optional[float] = None,
                 on_error: Optional[Callable[[Optional[LocationFailure]], None]] = None):
        self.loop = loop
        self.source = source
        self.handler = handler
        self.on_error = on_error
        self.interval = interval if interval is not None else CONFIG["gps_poll_interval"]
        self.active = False
        self._call: Optional[ScheduledCall] = None

    def start(self) -> "PositionWatch":
        self.active = True
        self._call = self.loop.call_soon(self._poll)
        return self

    def _next_interval(self) -> float:
        if isinstance(self.source, GPSPlayback):
            return self.source.get_poll_interval()
        return self.interval

    def _poll(self):
        if not self.active:
            return
        location = self.source.get_location(timeout=CONFIG["gps_fix_timeout"])
        if location:
            self.handler(location)
        elif self.on_error:
            self.on_error(getattr(self.source, "last_failure", None))
        if isinstance(self.source, GPSPlayback) and self.source.is_finished():
            self.active = False
            return
        if self.active:
            self._call = self.loop.call_later(self._next_interval(), self._poll)

    def cancel(self):
        self.active = False
        if self._call:
            self._call.cancel()
            self._call = None


class SimulatedWalk:
    """Feeds route points to a handler one per tick, like walking the route"""

    def __init__(self, loop: EventLoop, points: list[RoutePoint],
                 handler: Callable[[Location], None], interval: Optional[float] = None):
        self.loop = loop
        self.points = [(p.lat, p.lon) for p in points]
        self.handler = handler
        self.interval = interval if interval is not None else CONFIG["simulation_interval"]
        self.index = 0
        self.active = False
        self._call: Optional[ScheduledCall] = None

    def start(self) -> "SimulatedWalk":
        self.active = True
        self._call = self.loop.call_soon(self._tick)
        return self

    def _tick(self):
        if not self.active:
            return
        if self.index >= len(self.points):
            self.active = False
            return
        lat, lon = self.points[self.index]
        self.index += 1
        self.handler(Location(lat=lat, lon=lon, accuracy=0, timestamp=self.loop.time()))
        if self.active:
            self._call = self.loop.call_later(self.interval, self._tick)

    def is_finished(self) -> bool:
        return self.index >= len(self.points)

    def cancel(self):
        self.active = False
        if self._call:
            self._call.cancel()
            self._call = None

import json
import subprocess

import pytest

from fogwalk import gps
from fogwalk.gps import (
    GPS,
    FixedLocation,
    GPSPlayback,
    GPSRecorder,
    LocationFailure,
    PositionWatch,
    SimulatedWalk,
)
from fogwalk.models import Location, RoutePoint


def fake_run(returncode=0, stdout="", stderr="", raises=None):
    def run(cmd, capture_output=True, text=True, timeout=None):
        if raises:
            raise raises
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)
    return run


def test_gps_fix(monkeypatch):
    payload = json.dumps({"latitude": 40.0, "longitude": -3.0, "accuracy": 8.0})
    monkeypatch.setattr(gps.subprocess, "run", fake_run(stdout=payload))
    source = GPS()
    location = source.get_location()
    assert (location.lat, location.lon, location.accuracy) == (40.0, -3.0, 8.0)
    assert source.last_failure is None
    assert source.get_status() == "GPS OK, accuracy 8m"


@pytest.mark.parametrize("run, failure", [
    (fake_run(returncode=1, stderr="Permission denied for location"), LocationFailure.PERMISSION_DENIED),
    (fake_run(returncode=1, stderr="no provider"), LocationFailure.POSITION_UNAVAILABLE),
    (fake_run(stdout=""), LocationFailure.POSITION_UNAVAILABLE),
    (fake_run(stdout="{not json"), LocationFailure.POSITION_UNAVAILABLE),
    (fake_run(raises=subprocess.TimeoutExpired("termux-location", 10)), LocationFailure.TIMEOUT),
    (fake_run(raises=FileNotFoundError()), LocationFailure.POSITION_UNAVAILABLE),
])
def test_gps_failures(monkeypatch, run, failure):
    monkeypatch.setattr(gps.subprocess, "run", run)
    source = GPS()
    assert source.get_location() is None
    assert source.last_failure == failure
    assert source.consecutive_failures == 1
    assert failure.message in source.get_status()


def test_failure_messages_are_actionable():
    for failure in LocationFailure:
        assert failure.message.endswith(".")


def test_fixed_location():
    source = FixedLocation(40.0, -3.0)
    location = source.get_location()
    assert (location.lat, location.lon) == (40.0, -3.0)
    assert location.timestamp is not None


def test_record_then_playback(tmp_path):
    path = str(tmp_path / "trace.json")
    recorder = GPSRecorder(FixedLocation(40.0, -3.0), path)
    recorder.get_location()
    recorder.get_location()
    recorder.save()

    playback = GPSPlayback(path, speed=2.0)
    assert playback.get_location().lat == 40.0
    assert not playback.is_finished()
    assert playback.get_location().lon == -3.0
    assert playback.is_finished()
    assert playback.get_location() is None
    assert playback.last_failure == LocationFailure.POSITION_UNAVAILABLE


def test_playback_failed_entries(tmp_path):
    path = tmp_path / "trace.json"
    path.write_text(json.dumps({"trace": [
        {"elapsed": 0, "location": None},
        {"elapsed": 3, "location": {"lat": 40.0, "lon": -3.0, "accuracy": 5, "timestamp": 1.0}},
    ]}))
    playback = GPSPlayback(str(path), speed=3.0)
    assert playback.get_location() is None
    assert playback.consecutive_failures == 1
    assert playback.get_poll_interval() == pytest.approx(1.0)
    assert playback.get_location().accuracy == 5


def test_position_watch_polls_until_cancelled(loop):
    received = []
    watch = PositionWatch(loop, FixedLocation(40.0, -3.0), received.append, interval=3).start()
    loop.run_until(lambda: len(received) == 3, timeout=60)
    watch.cancel()
    loop.run_until_idle()
    assert len(received) == 3
    assert not watch.active


def test_position_watch_reports_failures(loop, monkeypatch):
    monkeypatch.setattr(gps.subprocess, "run", fake_run(returncode=1, stderr="permission"))
    failures = []
    watch = PositionWatch(loop, GPS(), lambda loc: None, interval=1, on_error=failures.append).start()
    loop.run_until(lambda: len(failures) == 2, timeout=10)
    watch.cancel()
    assert failures == [LocationFailure.PERMISSION_DENIED] * 2


def test_position_watch_stops_at_end_of_playback(loop, tmp_path):
    path = tmp_path / "trace.json"
    path.write_text(json.dumps({"trace": [
        {"elapsed": 0, "location": {"lat": 40.0, "lon": -3.0}},
        {"elapsed": 1, "location": {"lat": 40.001, "lon": -3.0}},
    ]}))
    received = []
    watch = PositionWatch(loop, GPSPlayback(str(path)), received.append).start()
    loop.run_until_idle()
    assert len(received) == 2
    assert not watch.active


def test_simulated_walk_feeds_each_point(loop, clock):
    points = [RoutePoint(40.0, -3.0), RoutePoint(40.001, -3.0), RoutePoint(40.002, -3.0)]
    received = []
    start = clock()
    walk = SimulatedWalk(loop, points, received.append).start()
    loop.run_until_idle()
    assert [(loc.lat, loc.lon) for loc in received] == [(p.lat, p.lon) for p in points]
    assert all(isinstance(loc, Location) for loc in received)
    assert walk.is_finished()
    assert clock() - start == pytest.approx(0.6)


def test_simulated_walk_cancel(loop):
    points = [RoutePoint(40.0, -3.0 + 0.001 * i) for i in range(10)]
    received = []
    walk = SimulatedWalk(loop, points, received.append).start()

    def on_point(location):
        received.append(location)
        if len(received) == 3:
            walk.cancel()

    walk.handler = on_point
    loop.run_until_idle()
    assert len(received) == 3

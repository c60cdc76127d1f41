import json

from fogwalk.debug_gui import ClickWatch, DebugServer, WebSocketGPS


def message(msg_type, data):
    return json.dumps({"type": msg_type, "data": data})


def test_clicks_queue_for_websocket_gps():
    server = DebugServer(open_browser=False)
    server.handle_message(message("location", {"lat": 40.0, "lon": -3.0}))
    source = WebSocketGPS(server)
    location = source.get_location(timeout=0)
    assert (location.lat, location.lon) == (40.0, -3.0)
    assert source.get_location(timeout=0) is None
    assert source.consecutive_failures == 1


def test_malformed_messages_are_ignored():
    server = DebugServer(open_browser=False)
    server.handle_message("{nope")
    server.handle_message(message("location", {"lat": "north"}))
    assert server.location_queue.empty()


def test_commands_are_forwarded():
    server = DebugServer(open_browser=False)
    received = []
    server.on_command = lambda name, data: received.append((name, data))
    server.handle_message(message("command", {"name": "generate", "distance_km": 1.5}))
    server.handle_message(message("command", {}))
    assert received == [("generate", {"distance_km": 1.5})]


def test_click_watch_delivers_on_loop(loop):
    server = DebugServer(open_browser=False)
    received = []
    watch = ClickWatch(loop, server, received.append).start()
    server.handle_message(message("location", {"lat": 40.0, "lon": -3.0}))
    assert received == []
    loop.run_once()
    assert len(received) == 1

    watch.cancel()
    server.handle_message(message("location", {"lat": 40.1, "lon": -3.0}))
    loop.run_once()
    assert len(received) == 1
    # With no watcher, clicks go back to the queue
    assert not server.location_queue.empty()


def test_send_without_clients_is_noop():
    server = DebugServer(open_browser=False)
    server.send_snapshot({"streets": []})
    server.send_log("hello")
    server.send_audio("hi")

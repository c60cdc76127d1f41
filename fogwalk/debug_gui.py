"""Debug GUI server for Fog of Walk."""

import asyncio
import http.server
import json
import queue
import socketserver
import threading
import time
import webbrowser
from functools import partial
from typing import Callable, Optional

from .config import CONFIG
from .events import EventLoop
from .models import Location


# HTML template for the debug GUI
DEBUG_GUI_HTML = '''<!DOCTYPE html>
<html>
<head>
    <title>Fog of Walk Debug GUI</title>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css" />
    <script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif; height: 100vh; display: flex; flex-direction: column; }
        header { background: #0f172a; color: #4ade80; padding: 12px 20px; display: flex; justify-content: space-between; align-items: center; }
        header h1 { font-size: 18px; font-weight: 600; letter-spacing: 1px; }
        .status-badge { background: #22c55e; color: white; padding: 4px 12px; border-radius: 12px; font-size: 12px; }
        .status-badge.disconnected { background: #ef4444; }
        .main-content { display: flex; flex: 1; overflow: hidden; }
        #map { flex: 1; min-width: 0; }
        .panel { width: 380px; background: #f8fafc; display: flex; flex-direction: column; border-left: 1px solid #e2e8f0; }
        .section { padding: 14px; border-bottom: 1px solid #e2e8f0; }
        .section h2 { font-size: 12px; text-transform: uppercase; color: #64748b; margin-bottom: 10px; letter-spacing: 0.5px; }
        .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 10px; }
        .item { background: white; padding: 8px; border-radius: 6px; border: 1px solid #e2e8f0; }
        .label { font-size: 11px; color: #64748b; margin-bottom: 4px; }
        .value { font-size: 15px; font-weight: 600; color: #1e293b; }
        .controls { display: flex; gap: 6px; flex-wrap: wrap; }
        .controls input { width: 70px; padding: 6px; }
        .controls button { padding: 6px 10px; border: none; border-radius: 4px; background: #1e293b; color: white; cursor: pointer; }
        .logs { flex: 1; overflow-y: auto; padding: 12px; background: #1e293b; font-family: "SF Mono", Monaco, monospace; font-size: 12px; }
        .log-entry { color: #e2e8f0; margin-bottom: 6px; line-height: 1.4; }
        .log-entry .data { color: #38bdf8; }
        .announce { background: #fef3c7; padding: 14px; font-size: 14px; color: #78350f; min-height: 48px; }
    </style>
</head>
<body>
    <header>
        <h1>FOG OF WALK</h1>
        <span id="connection-status" class="status-badge disconnected">Disconnected</span>
    </header>
    <div class="main-content">
        <div id="map"></div>
        <div class="panel">
            <div class="section">
                <h2>Mission</h2>
                <div class="controls">
                    <input id="distance" type="number" step="0.5" min="0.5" value="1.0" />
                    <button onclick="command('generate', {distance_km: parseFloat(document.getElementById('distance').value)})">Generate</button>
                    <button onclick="command('walk')">Walk</button>
                    <button onclick="command('simulate')">Simulate</button>
                    <button onclick="command('next')">Next</button>
                </div>
            </div>
            <div class="section">
                <h2>Status</h2>
                <div class="grid">
                    <div class="item"><div class="label">Level</div><div class="value" id="level">-</div></div>
                    <div class="item"><div class="label">XP (next level)</div><div class="value" id="xp">-</div></div>
                    <div class="item"><div class="label">Explored</div><div class="value" id="explored">-</div></div>
                    <div class="item"><div class="label">Progress</div><div class="value" id="progress">-</div></div>
                    <div class="item"><div class="label">Tracker</div><div class="value" id="tracker">-</div></div>
                    <div class="item"><div class="label">Estimate</div><div class="value" id="eta">-</div></div>
                </div>
            </div>
            <div class="announce" id="announce"></div>
            <div class="logs" id="logs"></div>
        </div>
    </div>
    <script>
        const COLORS = {explored: '#22c55e', in_route: '#f97316', unexplored: '#64748b'};
        const map = L.map('map').setView([0, 0], 2);
        L.tileLayer('https://{s}.basemap.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png', {maxZoom: 20}).addTo(map);
        let streetLayer = L.layerGroup().addTo(map);
        let routeLayer = L.layerGroup().addTo(map);
        let zoneLayer = L.layerGroup().addTo(map);
        let youMarker = null;
        let fitted = false;
        let ws = null;

        function command(name, data) {
            if (ws && ws.readyState === 1) ws.send(JSON.stringify({type: 'command', data: Object.assign({name: name}, data || {})}));
        }

        function render(s) {
            zoneLayer.clearLayers(); streetLayer.clearLayers(); routeLayer.clearLayers();
            if (s.zone) {
                const b = s.zone.bounds;
                L.rectangle([[b.south, b.west], [b.north, b.east]], {color: '#4ade80', weight: 1, fill: false, dashArray: '4'}).addTo(zoneLayer);
                if (!fitted) { map.fitBounds([[b.south, b.west], [b.north, b.east]]); fitted = true; }
            }
            s.streets.forEach(st => {
                L.polyline(st.path, {color: COLORS[st.state], weight: st.state === 'unexplored' ? 2 : 4, opacity: 0.8})
                    .bindTooltip(st.name).addTo(streetLayer);
            });
            if (s.route.length) {
                L.polyline(s.route.map(p => [p[0], p[1]]), {color: '#facc15', weight: 3, dashArray: '6'}).addTo(routeLayer);
                s.route.filter(p => p[2]).forEach(p => L.circleMarker([p[0], p[1]], {radius: 3, color: '#22c55e'}).addTo(routeLayer));
            }
            if (s.location) {
                if (youMarker) youMarker.setLatLng([s.location.lat, s.location.lon]);
                else youMarker = L.circleMarker([s.location.lat, s.location.lon], {radius: 8, color: '#ef4444', fillOpacity: 1}).addTo(map);
            }
            document.getElementById('level').textContent = s.game.level;
            document.getElementById('xp').textContent = s.game.xp + ' (' + s.game.xp_to_next_level + ')';
            document.getElementById('explored').textContent = s.exploration.explored + '/' + s.exploration.total + ' (' + s.exploration.percentage + '%)';
            document.getElementById('progress').textContent = s.progress + '%';
            document.getElementById('tracker').textContent = s.tracker_state;
            document.getElementById('eta').textContent = s.estimated_minutes ? s.estimated_minutes + ' min' : '-';
        }

        function addLog(msg) {
            const logs = document.getElementById('logs');
            const entry = document.createElement('div');
            entry.className = 'log-entry';
            entry.textContent = msg.message;
            if (msg.data) {
                const data = document.createElement('span');
                data.className = 'data';
                data.textContent = ' ' + JSON.stringify(msg.data);
                entry.appendChild(data);
            }
            logs.appendChild(entry);
            logs.scrollTop = logs.scrollHeight;
        }

        map.on('click', e => {
            if (ws && ws.readyState === 1) ws.send(JSON.stringify({type: 'location', data: {lat: e.latlng.lat, lon: e.latlng.lng}}));
        });

        function connect() {
            ws = new WebSocket('ws://localhost:{{WS_PORT}}');
            const status = document.getElementById('connection-status');
            ws.onopen = () => { status.textContent = 'Connected'; status.className = 'status-badge'; };
            ws.onclose = () => { status.textContent = 'Disconnected'; status.className = 'status-badge disconnected'; setTimeout(connect, 2000); };
            ws.onmessage = (event) => {
                const msg = JSON.parse(event.data);
                if (msg.type === 'snapshot') render(msg.data);
                else if (msg.type === 'log') addLog(msg.data);
                else if (msg.type === 'audio') document.getElementById('announce').textContent = msg.data.text;
            };
        }
        connect();
    </script>
</body>
</html>
'''


class DebugServer:
    """HTTP and WebSocket server for debug GUI"""

    def __init__(self, http_port: Optional[int] = None, ws_port: Optional[int] = None,
                 open_browser: bool = True):
        self.http_port = http_port or CONFIG["debug_http_port"]
        self.ws_port = ws_port or CONFIG["debug_ws_port"]
        self.open_browser = open_browser
        self.location_queue: queue.Queue = queue.Queue()
        # Called from the websocket thread; receivers must hop onto their own loop
        self.on_location: Optional[Callable[[Location], None]] = None
        self.on_command: Optional[Callable[[str, dict], None]] = None
        self.http_thread = None
        self.ws_thread = None
        self.ws_loop = None
        self.connected_clients: set = set()
        self._running = False

    def start(self):
        """Start HTTP and WebSocket servers in background threads"""
        self._running = True

        self.http_thread = threading.Thread(target=self._run_http_server, daemon=True)
        self.http_thread.start()

        self.ws_thread = threading.Thread(target=self._run_ws_server, daemon=True)
        self.ws_thread.start()

        # Give servers time to start
        time.sleep(0.5)

        url = f"http://localhost:{self.http_port}"
        print(f"Debug GUI available at: {url}")
        if self.open_browser:
            webbrowser.open(url)

    def _run_http_server(self):
        """Run the HTTP server for serving the GUI"""
        handler = partial(_DebugHTTPHandler, self.ws_port)
        with socketserver.TCPServer(("", self.http_port), handler) as httpd:
            httpd.allow_reuse_address = True
            httpd.timeout = 0.5
            while self._running:
                httpd.handle_request()

    def handle_message(self, message: str):
        """Dispatch one message received from the browser"""
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            return
        msg_type = data.get("type")
        payload = data.get("data") or {}
        if msg_type == "location":
            try:
                location = Location(lat=float(payload["lat"]), lon=float(payload["lon"]),
                                    accuracy=0, timestamp=time.time())
            except (KeyError, TypeError, ValueError):
                return
            if self.on_location:
                self.on_location(location)
            else:
                self.location_queue.put(location)
        elif msg_type == "command" and self.on_command:
            name = payload.pop("name", None)
            if name:
                self.on_command(name, payload)

    def _run_ws_server(self):
        """Run the WebSocket server"""
        self.ws_loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.ws_loop)

        async def handler(websocket):
            self.connected_clients.add(websocket)
            try:
                async for message in websocket:
                    self.handle_message(message)
            finally:
                self.connected_clients.discard(websocket)

        async def main():
            try:
                import websockets
                async with websockets.serve(handler, "localhost", self.ws_port):
                    while self._running:
                        await asyncio.sleep(0.1)
            except OSError as e:
                print(f"WebSocket server error: {e}")

        self.ws_loop.run_until_complete(main())

    def _send_message(self, msg_type: str, data: dict):
        """Send a message to all connected WebSocket clients"""
        if not self.connected_clients or not self.ws_loop:
            return

        message = json.dumps({"type": msg_type, "data": data}, default=str)

        async def send_to_all():
            for client in list(self.connected_clients):
                try:
                    await client.send(message)
                except Exception:
                    self.connected_clients.discard(client)

        try:
            asyncio.run_coroutine_threadsafe(send_to_all(), self.ws_loop)
        except RuntimeError:
            pass  # loop already closed

    def send_snapshot(self, snapshot: dict):
        """Send full engine state to browser for display"""
        self._send_message("snapshot", snapshot)

    def send_log(self, message: str, data: Optional[dict] = None):
        """Send log message to browser"""
        self._send_message("log", {"message": message, "data": data})

    def send_audio(self, text: str):
        """Send announcement text to browser"""
        self._send_message("audio", {"text": text})

    def get_clicked_location(self, timeout: float = 30) -> Optional[Location]:
        """Block until user clicks on map, return Location"""
        try:
            return self.location_queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def stop(self):
        """Stop the servers"""
        self._running = False


class _DebugHTTPHandler(http.server.SimpleHTTPRequestHandler):
    """HTTP handler that serves the debug GUI"""

    def __init__(self, ws_port: int, *args, **kwargs):
        self.ws_port = ws_port
        super().__init__(*args, **kwargs)

    def do_GET(self):
        if self.path == '/' or self.path == '/index.html':
            self.send_response(200)
            self.send_header('Content-type', 'text/html')
            self.end_headers()
            html = DEBUG_GUI_HTML.replace('{{WS_PORT}}', str(self.ws_port))
            self.wfile.write(html.encode())
        else:
            self.send_error(404)

    def log_message(self, format, *args):
        pass  # Suppress HTTP log messages


class WebSocketGPS:
    """Location source that gets locations from map clicks via WebSocket"""

    def __init__(self, debug_server: DebugServer):
        self.server = debug_server
        self.last_location: Optional[Location] = None
        self.last_failure = None
        self.consecutive_failures = 0

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        """Block until location clicked on map"""
        location = self.server.get_clicked_location(timeout=timeout)
        if location:
            self.last_location = location
            self.consecutive_failures = 0
            return location
        self.consecutive_failures += 1
        return None

    def get_status(self) -> str:
        return "Debug GUI (click map to set location)"


class ClickWatch:
    """Position subscription fed by map clicks instead of polling"""

    def __init__(self, loop: EventLoop, server: DebugServer,
                 handler: Callable[[Location], None]):
        self.loop = loop
        self.server = server
        self.handler = handler
        self.active = False

    def start(self) -> "ClickWatch":
        self.active = True
        self.server.on_location = lambda location: self.loop.post(self._deliver, location)
        return self

    def _deliver(self, location: Location):
        if self.active:
            self.handler(location)

    def cancel(self):
        self.active = False
        self.server.on_location = None

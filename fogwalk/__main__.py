#!/usr/bin/env python3
"""
Fog of Walk - Explore your neighbourhood one street at a time

Usage:
    python -m fogwalk [distance_km] [options]

Options:
    --lat LAT         Starting latitude (for testing without GPS)
    --lon LON         Starting longitude (for testing without GPS)
    --simulate        Walk the generated route virtually
    --preview         Show the generated route without walking
    --record FILE     Record GPS trace to JSON file for debugging
    --playback FILE   Playback GPS trace from JSON file
    --speed FACTOR    Playback speed multiplier (default: 1.0)
    --offline         Skip OpenStreetMap and use the street grid
    --html FILE       Output map of zone, streets and route to HTML file
    --db PATH         Game state database (default: fogwalk_state.db)
    --log FILE        Log file path (default: fogwalk_TIMESTAMP.log)
    --voice           Speak announcements
    --debug-gui       Run with web-based visual debugger
    --reset           Erase the saved game state and exit
    --stats           Print the saved game state and exit
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

from .app import FogOfWalk
from .audio import Audio
from .config import CONFIG
from .debug_gui import DebugServer, WebSocketGPS
from .gps import GPS, FixedLocation, GPSPlayback, GPSRecorder
from .history import GameStore
from .logger import Logger
from .osm import default_sources
from .progression import xp_for_level


def _print_stats(store: GameStore):
    state = store.load()
    print("\n=== Fog of Walk ===")
    print(f"Level: {state.level}")
    print(f"XP: {state.xp} ({xp_for_level(state.level + 1) - state.xp} to next level)")
    print(f"Missions completed: {state.routes_completed}")
    print(f"Distance walked: {state.total_distance_walked:.2f}km")
    print(f"Streets explored: {state.streets_explored} ({state.exploration_percentage}% of zone)")
    print(f"Zone radius: {state.zone_radius_km or CONFIG['zone_initial_radius_km']:.2f}km")
    print(f"Badges: {', '.join(sorted(state.badges)) or 'none'}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Fog of Walk - Explore your neighbourhood one street at a time"
    )
    parser.add_argument("distance", type=float, nargs="?",
                        default=CONFIG["default_walk_distance_km"],
                        help="Target distance in km (default: %(default)s)")
    parser.add_argument("--lat", type=float, metavar="LAT",
                        help="Starting latitude (for testing without GPS)")
    parser.add_argument("--lon", type=float, metavar="LON",
                        help="Starting longitude (for testing without GPS)")
    parser.add_argument("--simulate", action="store_true",
                        help="Walk the generated route virtually")
    parser.add_argument("--preview", action="store_true",
                        help="Show the generated route without walking")
    parser.add_argument("--record", metavar="FILE",
                        help="Record GPS trace to JSON file")
    parser.add_argument("--playback", metavar="FILE",
                        help="Playback GPS trace from JSON file")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--offline", action="store_true",
                        help="Skip OpenStreetMap and use the street grid")
    parser.add_argument("--html", metavar="FILE",
                        help="Output map of zone, streets and route to HTML file")
    parser.add_argument("--db", metavar="PATH", default=CONFIG["db_path"],
                        help="Game state database (default: %(default)s)")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: fogwalk_TIMESTAMP.log)")
    parser.add_argument("--voice", action="store_true",
                        help="Speak announcements")
    parser.add_argument("--debug-gui", action="store_true",
                        help="Run with web-based visual debugger")
    parser.add_argument("--reset", action="store_true",
                        help="Erase the saved game state and exit")
    parser.add_argument("--stats", action="store_true",
                        help="Print the saved game state and exit")

    args = parser.parse_args(argv)

    # Validate lat/lon - must provide both or neither
    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be used together")
    if args.record and args.playback:
        parser.error("--record and --playback cannot be combined")
    if args.distance <= 0:
        parser.error("distance must be positive")

    store = GameStore(args.db)

    if args.reset:
        if store.reset():
            print("Game state erased.")
        else:
            print("No saved game state.")
        store.close()
        return

    if args.stats:
        _print_stats(store)
        store.close()
        return

    log_path = args.log
    if not log_path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = f"fogwalk_{timestamp}.log"

    debug_server = None
    if args.debug_gui:
        debug_server = DebugServer()
        debug_server.start()
        Audio.set_callback(debug_server.send_audio)

    # Set up location source
    if args.lat is not None:
        location_source = FixedLocation(args.lat, args.lon)
    elif debug_server:
        location_source = WebSocketGPS(debug_server)
    elif args.playback:
        if not Path(args.playback).exists():
            print(f"Playback file not found: {args.playback}")
            sys.exit(1)
        location_source = GPSPlayback(args.playback, args.speed)
    elif args.record:
        location_source = GPSRecorder(GPS(), args.record)
    else:
        location_source = GPS()

    logger = Logger(log_path, callback=debug_server.send_log if debug_server else None)
    app = FogOfWalk(
        store=store,
        location_source=location_source,
        street_sources=default_sources(offline=args.offline),
        logger=logger,
        audio=Audio(enabled=args.voice),
        debug_server=debug_server,
    )

    try:
        if debug_server:
            app.serve(args.distance)
        else:
            app.run(args.distance, simulate=args.simulate, preview=args.preview,
                    html_output=args.html)
    finally:
        app.close()


if __name__ == "__main__":
    main()

"""Configuration settings for Fog of Walk."""

CONFIG = {
    # Exploration zone
    "zone_initial_radius_km": 0.25,  # 0.5km square
    "zone_radius_increment_km": 0.25,
    "zone_completion_percentage": 80,  # explored share that completes a zone
    # Route selection
    "selector_stop_ratio": 0.9,  # stop once total reaches 90% of target
    "selector_overshoot_ratio": 1.2,  # never knowingly exceed target by more than 20%
    "selector_local_radius_km": 0.2,  # nearest-neighbour search radius before global fallback
    "walking_speed_m_per_min": 83.33,  # 5 km/h
    "navigation_overhead": 1.2,  # 20% extra time for turns and crossings
    # Route stitching
    "anchor_tolerance_km": 0.001,  # ~1m
    "direct_connection_km": 0.05,  # 50m
    "connector_search_km": 0.2,  # 200m
    # Progress tracking
    "proximity_threshold_km": 0.010,  # ~10m
    "auto_complete_progress": 0.9,
    "auto_complete_delay": 2.0,  # seconds
    "gps_poll_interval": 3,  # seconds
    "gps_fix_timeout": 10,  # seconds per termux-location attempt
    "gps_fix_max_time": 30.0,  # total retry time for the first fix
    "simulation_interval": 0.2,  # seconds between simulated waypoints
    # Rewards
    "route_xp": 100,
    "zone_bonus_xp": 500,
    "xp_per_level_unit": 100,  # level = floor(sqrt(xp / 100)) + 1
    "route_milestone_interval": 10,
    # Badges: (badge_id, threshold, text)
    "route_badges": [
        ("routes1", 1, "FIRST BLOOD - First mission completed"),
        ("routes5", 5, "SQUAD LEADER - 5 missions completed"),
        ("routes10", 10, "LIEUTENANT - 10 missions completed"),
        ("routes25", 25, "CAPTAIN - 25 missions completed"),
        ("routes50", 50, "MAJOR - 50 missions completed"),
        ("routes100", 100, "COLONEL - 100 missions completed"),
    ],
    "exploration_badges": [
        ("explorer25", 25, "SCOUT - 25% zone explored"),
        ("explorer50", 50, "NAVIGATOR - 50% zone explored"),
        ("explorer75", 75, "PATHFINDER - 75% zone explored"),
        ("explorer90", 90, "ZONE MASTER - 90% zone explored"),
    ],
    "level_badges": [
        ("level2", 2, "PROMOTED - Reached Rank 2"),
        ("level5", 5, "VETERAN - Reached Rank 5"),
        ("level10", 10, "ELITE - Reached Rank 10"),
    ],
    "street_badges": [
        ("streets10", 10, "STREET WALKER - 10 streets explored"),
        ("streets50", 50, "URBAN EXPLORER - 50 streets explored"),
        ("streets100", 100, "CITY CONQUEROR - 100 streets explored"),
    ],
    "distance_badges": [
        ("distance10", 10, "WALKER - 10km total distance"),
        ("distance50", 50, "RUNNER - 50km total distance"),
        ("distance100", 100, "MARATHON MAN - 100km total distance"),
    ],
    # Street data
    "overpass_url": "https://overpass-api.de/api/interpreter",
    "overpass_highways": [
        "primary", "secondary", "tertiary", "residential", "footway",
        "path", "pedestrian", "living_street", "unclassified",
    ],
    "street_fetch_timeout": 25,  # seconds, per request
    "street_load_timeout": 30,  # seconds before the grid replaces a pending fetch
    "osm_cache_dir": "osm_cache",
    "osm_cache_max_age": 7 * 24 * 3600,  # 7 days
    "grid_spacing_deg": 0.002,  # ~220m between synthetic streets
    # Persistence
    "app_state_key": "theWalkingManGameState",
    "db_path": "fogwalk_state.db",
    # Diagnostics
    "event_log_size": 20,
    "debug_http_port": 8080,
    "debug_ws_port": 8765,
    "default_walk_distance_km": 1.0,
}

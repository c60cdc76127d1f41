"""Render an engine snapshot as an interactive HTML map."""

from typing import Optional

import folium

STATE_COLORS = {
    "explored": "#22c55e",
    "in_route": "#f97316",
    "unexplored": "#64748b",
}


def _center(snapshot: dict) -> Optional[list[float]]:
    if snapshot.get("location"):
        return [snapshot["location"]["lat"], snapshot["location"]["lon"]]
    if snapshot.get("zone"):
        center = snapshot["zone"]["center"]
        return [center["lat"], center["lon"]]
    if snapshot.get("route"):
        first = snapshot["route"][0]
        return [first[0], first[1]]
    return None


def render_map(snapshot: dict) -> folium.Map:
    """Build a folium map showing the zone, the fog of war and the route"""
    center = _center(snapshot)
    if center is None:
        raise ValueError("Snapshot has no location, zone or route to draw")

    m = folium.Map(location=center, zoom_start=16, tiles="CartoDB dark_matter")
    folium.TileLayer("OpenStreetMap", name="OpenStreetMap").add_to(m)

    zone = snapshot.get("zone")
    if zone:
        b = zone["bounds"]
        folium.Rectangle(
            bounds=[[b["south"], b["west"]], [b["north"], b["east"]]],
            color="#4ade80", weight=1, fill=False, dash_array="4",
            tooltip=f"Zone radius {zone['radius_km']:.2f}km",
        ).add_to(m)

    layers = {
        "explored": folium.FeatureGroup(name="Explored streets", show=True),
        "in_route": folium.FeatureGroup(name="Mission streets", show=True),
        "unexplored": folium.FeatureGroup(name="Unexplored streets", show=True),
    }
    for street in snapshot.get("streets", []):
        state = street.get("state", "unexplored")
        folium.PolyLine(
            locations=street["path"],
            color=STATE_COLORS.get(state, STATE_COLORS["unexplored"]),
            weight=2 if state == "unexplored" else 4,
            opacity=0.8,
            tooltip=street["name"],
            popup=folium.Popup(
                f"<b>{street['name']}</b><br>Type: {street['category']}<br>State: {state}",
                max_width=250,
            ),
        ).add_to(layers.get(state, layers["unexplored"]))
    for layer in layers.values():
        layer.add_to(m)

    route = snapshot.get("route") or []
    if route:
        route_layer = folium.FeatureGroup(name="Route", show=True)
        folium.PolyLine(
            locations=[[p[0], p[1]] for p in route],
            color="#facc15", weight=3, dash_array="6",
            tooltip=f"{snapshot.get('distance_km', 0):.2f}km, "
                    f"~{snapshot.get('estimated_minutes', 0)} min",
        ).add_to(route_layer)
        for p in route:
            if len(p) > 2 and p[2]:
                folium.CircleMarker(location=[p[0], p[1]], radius=3, color="#22c55e",
                                    fill=True).add_to(route_layer)
        route_layer.add_to(m)

    if snapshot.get("location"):
        folium.Marker(
            location=center,
            popup="You",
            icon=folium.Icon(color="red", icon="user"),
        ).add_to(m)

    game = snapshot.get("game") or {}
    exploration = snapshot.get("exploration") or {}
    stats_html = f"""
    <div style="position: fixed; bottom: 30px; left: 30px; z-index: 1000;
                background: rgba(15, 23, 42, 0.9); color: #4ade80; padding: 12px 16px;
                border-radius: 8px; font-family: monospace; font-size: 13px;">
        <b>FOG OF WALK</b><br>
        Level {game.get('level', 1)} &middot; {game.get('xp', 0)} XP<br>
        Explored {exploration.get('explored', 0)}/{exploration.get('total', 0)}
        ({exploration.get('percentage', 0)}%)<br>
        Progress {snapshot.get('progress', 0)}%
    </div>
    """
    m.get_root().html.add_child(folium.Element(stats_html))

    folium.LayerControl().add_to(m)
    return m


def save_map(snapshot: dict, output_path: str):
    m = render_map(snapshot)
    m.save(output_path)
    print(f"Map saved to {output_path}")

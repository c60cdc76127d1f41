import json

from fogwalk.history import GameStore
from fogwalk.models import GameState


def test_missing_state_gives_defaults(store):
    state = store.load()
    assert state.level == 1
    assert state.xp == 0
    assert state.streets_explored == 0
    assert state.badges == set()


def test_save_and_load(store):
    state = GameState(xp=250, level=2, routes_completed=3, badges={"routes1"},
                      explored_street_ids={"a", "b"}, zone_radius_km=0.5)
    store.save(state)
    loaded = store.load()
    assert loaded == state


def test_save_overwrites(store):
    store.save(GameState(xp=100))
    store.save(GameState(xp=200))
    assert store.load().xp == 200
    count = store.conn.execute("SELECT COUNT(*) FROM app_state").fetchone()[0]
    assert count == 1


def test_state_survives_reopen(tmp_path):
    path = str(tmp_path / "state.db")
    first = GameStore(path)
    first.save(GameState(xp=400, level=3))
    first.close()
    second = GameStore(path)
    assert second.load().level == 3
    second.close()


def test_old_documents_are_backfilled(store):
    legacy = {
        "level": 2,
        "xp": 150,
        "routesCompleted": 1,
        "totalDistanceWalked": 1.2,
        "explorationPercentage": 40,
        "badges": {"routes1": True, "routes5": False},
        "visitedStreets": [101, 102],
        "someFutureField": "ignored",
    }
    store.conn.execute(
        "INSERT INTO app_state (key, document, updated_at) VALUES (?, ?, ?)",
        (store.key, json.dumps(legacy), "2024-01-01T00:00:00"),
    )
    store.conn.commit()

    state = store.load()
    assert state.routes_completed == 1
    assert state.total_distance_walked == 1.2
    assert state.exploration_percentage == 40
    assert state.badges == {"routes1"}
    assert state.explored_street_ids == {"101", "102"}
    assert state.zone_completed is False
    assert state.completed_routes == []


def test_unreadable_document_starts_fresh(store):
    store.conn.execute(
        "INSERT INTO app_state (key, document, updated_at) VALUES (?, ?, ?)",
        (store.key, "{broken", "2024-01-01T00:00:00"),
    )
    store.conn.commit()
    assert store.load() == GameState()


def test_reset(store):
    assert not store.reset()
    store.save(GameState(xp=100))
    assert store.reset()
    assert store.load().xp == 0


def test_fixed_application_key(store):
    store.save(GameState())
    keys = [row[0] for row in store.conn.execute("SELECT key FROM app_state")]
    assert keys == ["theWalkingManGameState"]

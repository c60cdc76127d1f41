import pytest

from fogwalk.__main__ import main
from fogwalk.config import CONFIG
from fogwalk.history import GameStore
from fogwalk.models import GameState


@pytest.fixture
def fast(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setitem(CONFIG, "simulation_interval", 0.001)
    monkeypatch.setitem(CONFIG, "auto_complete_delay", 0.01)
    return tmp_path


def test_stats(fast, capsys):
    db = str(fast / "state.db")
    store = GameStore(db)
    store.save(GameState(xp=150, level=2, routes_completed=1, badges={"routes1"}))
    store.close()
    main(["--db", db, "--stats"])
    out = capsys.readouterr().out
    assert "Level: 2" in out
    assert "routes1" in out


def test_reset(fast, capsys):
    db = str(fast / "state.db")
    store = GameStore(db)
    store.save(GameState(xp=150))
    store.close()
    main(["--db", db, "--reset"])
    assert "Game state erased." in capsys.readouterr().out
    store = GameStore(db)
    assert store.load().xp == 0
    store.close()


def test_lat_requires_lon(fast):
    with pytest.raises(SystemExit):
        main(["--lat", "40.0"])


def test_offline_simulation(fast, capsys):
    db = str(fast / "state.db")
    html = str(fast / "map.html")
    main(["0.5", "--lat", "40.0", "--lon", "-3.0", "--offline", "--simulate",
          "--db", db, "--log", str(fast / "run.log"), "--html", html])
    out = capsys.readouterr().out
    assert "Mission complete!" in out
    store = GameStore(db)
    assert store.load().routes_completed == 1
    store.close()
    assert (fast / "map.html").exists()


def test_preview_does_not_walk(fast, capsys):
    db = str(fast / "state.db")
    main(["--lat", "40.0", "--lon", "-3.0", "--offline", "--preview",
          "--db", db, "--log", str(fast / "run.log")])
    assert "MISSION PREVIEW" in capsys.readouterr().out
    store = GameStore(db)
    assert store.load().routes_completed == 0
    store.close()

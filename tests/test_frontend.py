import pytest

from frontend.app import create_app
from frontend.config import Config
from frontend.sync import OfflineCache, PlacesStore
from test_sync import FakeAPI, _place


class UiConfig(Config):
    TESTING = True
    LIVE_UPDATES = False
    SECRET_KEY = "test"


class RecordingListener:
    gave_up = False

    def __init__(self):
        self.sent = []

    def send(self, message):
        self.sent.append(message)


@pytest.fixture()
def store(tmp_path):
    api = FakeAPI([_place(1, "Fjord", 5), _place(2, "Desert", 2)])
    return PlacesStore(api, cache=OfflineCache(tmp_path / "cache.json"))


@pytest.fixture()
def ui(store):
    app = create_app(UiConfig, store=store)
    return app.test_client()


def test_index_lists_and_filters(ui):
    r = ui.get("/")
    assert r.status_code == 200
    assert b"Fjord" in r.data and b"Desert" in r.data

    r = ui.get("/?minRating=4")
    assert b"Fjord" in r.data and b"Desert" not in r.data


def test_add_place_and_validation_error(ui, store):
    r = ui.post("/places/new", data={"name": "Canyon", "location": "Utah", "rating": "4", "description": "Red"})
    assert r.status_code == 302
    assert "Canyon" in {p["name"] for p in store.places}

    store.api.fail_names = {"Bad"}
    r = ui.post("/places/new", data={"name": "Bad", "location": "x", "rating": "4", "description": "y"},
                follow_redirects=True)
    assert b"Could not add place: rejected" in r.data


def test_offline_toggle_queues_then_syncs(ui, store):
    ui.post("/connectivity")
    assert store.online is False

    ui.post("/places/1/delete")
    assert [op["type"] for op in store.pending] == ["delete"]

    r = ui.post("/connectivity", follow_redirects=True)
    assert store.online is True
    assert store.pending == []
    assert b"1 synced" in r.data


def test_auto_refresh_toggle_sends_relay_message(store):
    listener = RecordingListener()
    app = create_app(UiConfig, store=store, listener=listener)

    app.test_client().post("/auto-refresh")
    assert listener.sent == [{"type": "toggle-auto-refresh", "enabled": True}]
    assert store.notifier == listener.send


def test_offline_add_with_fractional_rating_is_refused(ui, store):
    ui.post("/connectivity")

    r = ui.post("/places/new", data={"name": "Half", "location": "x", "rating": "4.5", "description": "y"})
    assert r.status_code == 200
    assert b"Rating is required and must be an integer between 1 and 5" in r.data
    assert store.pending == []
    assert "Half" not in {p["name"] for p in store.places}

    r = ui.get("/?sortBy=rating&minRating=3")
    assert r.status_code == 200
    assert b"Fjord" in r.data

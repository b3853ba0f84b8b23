import json

import pytest

from frontend.api import APIError
from frontend.sync import OfflineCache, PlacesStore, visible_places


def _place(pid: int, name: str, rating: int = 3, **extra) -> dict:
    return {"id": pid, "name": name, "location": "Somewhere", "rating": rating,
            "description": "d", "videoUrl": None, "categoryId": None, **extra}


class FakeAPI:
    def __init__(self, places=None):
        self.server = {p["id"]: dict(p) for p in (places or [])}
        self.next_id = max(self.server, default=0) + 1
        self.calls: list[tuple] = []
        self.fail_with: APIError | None = None
        self.fail_names: set[str] = set()

    def _check(self, data=None):
        if self.fail_with is not None:
            raise self.fail_with
        if data and data.get("name") in self.fail_names:
            raise APIError(400, "rejected", {"errors": ["rejected"]})

    def places(self, **_):
        self.calls.append(("list",))
        self._check()
        return list(self.server.values())

    def create_place(self, data):
        self.calls.append(("create", data["name"]))
        self._check(data)
        place = _place(self.next_id, data["name"], data.get("rating", 3))
        self.server[place["id"]] = place
        self.next_id += 1
        return place

    def update_place(self, place_id, data):
        self.calls.append(("update", place_id))
        self._check(data)
        if place_id not in self.server:
            raise APIError(404, "Place not found")
        self.server[place_id] = {**self.server[place_id], **data, "id": place_id}
        return self.server[place_id]

    def delete_place(self, place_id):
        self.calls.append(("delete", place_id))
        self._check()
        if self.server.pop(place_id, None) is None:
            raise APIError(404, "Place not found")
        return {"message": "Place deleted successfully"}


@pytest.fixture()
def cache(tmp_path):
    return OfflineCache(tmp_path / "cache.json")


def test_load_mirrors_server_into_cache(cache):
    api = FakeAPI([_place(1, "A")])
    store = PlacesStore(api, cache=cache)

    assert [p["name"] for p in store.load()] == ["A"]
    assert cache.load()["places"][0]["name"] == "A"
    assert store.error is None


def test_load_falls_back_to_cache_on_failure(cache):
    cache.save([_place(1, "Cached")], [])
    api = FakeAPI()
    api.fail_with = APIError(0, "Network error")
    store = PlacesStore(api, cache=cache)

    assert [p["name"] for p in store.load()] == ["Cached"]
    assert store.error == "Network error"


def test_online_writes_call_api_and_notify(cache):
    api = FakeAPI()
    sent = []
    store = PlacesStore(api, cache=cache, notifier=sent.append)

    created = store.add_place({"name": "New", "location": "X", "rating": 4, "description": "d"})
    store.update_place(created["id"], {"name": "Newer", "location": "X", "rating": 4, "description": "d"})
    store.delete_place(created["id"])

    assert [m["action"] for m in sent] == ["add", "refresh", "delete"]
    assert sent[-1] == {"type": "update", "action": "delete", "id": created["id"]}
    assert store.places == []
    assert api.server == {}


def test_online_failure_propagates(cache):
    api = FakeAPI()
    api.fail_names = {"Bad"}
    store = PlacesStore(api, cache=cache)

    with pytest.raises(APIError) as exc:
        store.add_place({"name": "Bad"})
    assert exc.value.status_code == 400
    assert store.places == []


def test_offline_operations_replay_in_order_with_temp_id_remap(cache):
    api = FakeAPI([_place(1, "Existing")])
    sent = []
    store = PlacesStore(api, cache=cache, notifier=sent.append)
    store.load()
    store.set_online(False)

    temp = store.add_place({"name": "Offline", "location": "Y", "rating": 5, "description": "d"})
    assert temp["id"] < 0
    store.update_place(temp["id"], {"name": "Offline edited", "location": "Y", "rating": 5, "description": "d"})
    store.delete_place(1)

    assert [op["type"] for op in store.pending] == ["add", "update", "delete"]
    assert api.calls == [("list",)]
    assert json.loads(cache.path.read_text())["pending"] == store.pending

    result = store.set_online(True)

    assert result == {"replayed": 3, "failed": 0}
    assert api.calls[1:] == [("create", "Offline"), ("update", 2), ("delete", 1)]
    assert store.pending == []
    assert [p["id"] for p in store.places] == [2]
    assert store.places[0]["name"] == "Offline edited"
    assert [m["action"] for m in sent] == ["add", "refresh", "delete"]


def test_failed_replay_is_requeued_in_order(cache):
    api = FakeAPI([_place(1, "A"), _place(2, "B")])
    store = PlacesStore(api, cache=cache)
    store.load()
    store.set_online(False)

    store.update_place(1, {"name": "Bad", "rating": 3})
    store.update_place(2, {"name": "Fine", "rating": 3})
    store.add_place({"name": "Bad", "rating": 3})
    temp_id = store.pending[-1]["id"]
    store.delete_place(temp_id)

    result = store.set_online(True)

    assert result == {"replayed": 1, "failed": 3}
    assert [(op["type"], op["id"]) for op in store.pending] == [
        ("update", 1), ("add", temp_id), ("delete", temp_id)
    ]
    assert api.server[2]["name"] == "Fine"
    assert cache.load()["pending"] == store.pending


def test_replayed_delete_of_missing_place_is_not_requeued(cache):
    api = FakeAPI([_place(1, "A")])
    store = PlacesStore(api, cache=cache)
    store.load()
    store.set_online(False)
    store.delete_place(1)
    api.server.clear()

    assert store.set_online(True) == {"replayed": 1, "failed": 0}
    assert store.pending == []


def test_pending_queue_survives_restart(cache):
    api = FakeAPI()
    store = PlacesStore(api, cache=cache, online=False)
    store.add_place({"name": "Later", "rating": 4})

    reopened = PlacesStore(api, cache=cache, online=False)
    assert [op["type"] for op in reopened.pending] == ["add"]
    next_temp = reopened.add_place({"name": "Another", "rating": 4})["id"]
    assert next_temp < reopened.pending[0]["id"]


def test_apply_relay_event(cache):
    store = PlacesStore(FakeAPI(), cache=cache)
    store.apply_relay_event({"type": "update", "action": "add", "data": _place(3, "Pushed")})
    store.apply_relay_event({"type": "update", "action": "add", "data": _place(3, "Duplicate")})
    assert [p["name"] for p in store.places] == ["Pushed"]

    store.apply_relay_event({"type": "update", "action": "refresh", "data": _place(3, "Refreshed", 1)})
    assert store.places[0]["rating"] == 1

    store.apply_relay_event({"type": "update", "action": "delete", "id": 3})
    assert store.places == []

    store.apply_relay_event({"type": "auto-refresh-status", "enabled": True})
    assert store.auto_refresh is True


def test_corrupt_cache_starts_empty(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{broken")
    assert OfflineCache(path).load() == {"places": [], "pending": []}


def test_visible_places_filters_and_sorts():
    places = [_place(1, "Beta", 2), _place(2, "alpha lake", 5), _place(3, "Gamma", 4, description="Lake view")]

    assert [p["id"] for p in visible_places(places, search="LAKE")] == [2, 3]
    assert [p["id"] for p in visible_places(places, min_rating=4, sort_by="rating", sort_order="desc")] == [2, 3]
    assert [p["id"] for p in visible_places(places, sort_by="rating")] == [1, 3, 2]


def test_offline_write_with_bad_rating_is_rejected_locally(cache):
    store = PlacesStore(FakeAPI([_place(1, "A")]), cache=cache)
    store.load()
    store.set_online(False)

    for rating in ("4.5", "", 0, 6, True):
        with pytest.raises(APIError) as exc:
            store.add_place({"name": "Odd", "location": "X", "rating": rating, "description": "d"})
        assert exc.value.status_code == 400
        assert exc.value.message == "Rating is required and must be an integer between 1 and 5"

    with pytest.raises(APIError):
        store.update_place(1, {"name": "A", "rating": "five"})

    assert store.pending == []
    assert store.places[0]["rating"] == 3


def test_visible_places_tolerates_non_integer_ratings():
    places = [_place(1, "Good", 4), _place(2, "Legacy", "4.5"), _place(3, "Bad", 1)]

    assert [p["id"] for p in visible_places(places, sort_by="rating")] == [2, 3, 1]
    assert [p["id"] for p in visible_places(places, min_rating=2)] == [1]

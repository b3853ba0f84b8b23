import asyncio
import json
import random

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.repositories.backends import MemoryBackend
from app.schemas.places import PlaceCreate
from app.services.relay import RelayHub
from conftest import make_settings

CONNECTED = {"type": "connected"}


class FakeSocket:
    def __init__(self):
        self.sent: list[str] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(data)


class StuckSocket:
    """Never finishes a send, so everything after the first message stays queued."""

    async def send_text(self, data: str) -> None:
        await asyncio.Event().wait()


class FixedRandom(random.Random):
    def __init__(self, value: float):
        super().__init__(7)
        self.value = value

    def random(self) -> float:
        return self.value


def _memory_hub(**kwargs) -> RelayHub:
    backend = MemoryBackend()
    with backend.open() as repos:
        repos.places.create(PlaceCreate(name="Harbor", location="Oslo", rating=3, description="Boats"))
    return RelayHub(backend, tick_seconds=3600, **kwargs)


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture()
def relay_client(tmp_path):
    app = create_app(make_settings("memory", tmp_path))
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def persisting_client(tmp_path):
    app = create_app(make_settings("orm", tmp_path, relay_persist_updates=True))
    with TestClient(app) as c:
        yield c


def test_update_from_one_client_reaches_the_other_verbatim(relay_client):
    with relay_client.websocket_connect("/ws") as a, relay_client.websocket_connect("/ws") as b:
        assert a.receive_json() == CONNECTED
        assert b.receive_json() == CONNECTED

        raw = json.dumps({"type": "update", "action": "delete", "id": 5})
        a.send_text(raw)
        assert b.receive_text() == raw


def test_toggle_auto_refresh_is_announced_to_everyone(relay_client):
    with relay_client.websocket_connect("/ws") as a, relay_client.websocket_connect("/ws") as b:
        a.receive_json()
        b.receive_json()

        a.send_json({"type": "toggle-auto-refresh", "enabled": True})
        assert a.receive_json() == {"type": "auto-refresh-status", "enabled": True}
        assert b.receive_json() == {"type": "auto-refresh-status", "enabled": True}

        b.send_json({"type": "toggle-auto-refresh", "enabled": False})
        assert a.receive_json() == {"type": "auto-refresh-status", "enabled": False}
        assert b.receive_json() == {"type": "auto-refresh-status", "enabled": False}


def test_malformed_message_keeps_connection_open(relay_client):
    with relay_client.websocket_connect("/ws") as a, relay_client.websocket_connect("/ws") as b:
        a.receive_json()
        b.receive_json()

        a.send_text("{not json")
        a.send_json({"type": "mystery"})
        raw = json.dumps({"type": "update", "action": "add", "data": {"id": 1}})
        a.send_text(raw)
        assert b.receive_text() == raw


def test_binary_frames_are_relayed_as_text(relay_client):
    with relay_client.websocket_connect("/ws") as a, relay_client.websocket_connect("/ws") as b:
        a.receive_json()
        b.receive_json()

        raw = json.dumps({"type": "update", "action": "delete", "id": 7})
        a.send_bytes(raw.encode("utf-8"))
        assert b.receive_text() == raw

        a.send_bytes(b"\xff\xfe")
        raw = json.dumps({"type": "update", "action": "delete", "id": 8})
        a.send_text(raw)
        assert b.receive_text() == raw


def test_persisted_delete_is_applied_before_broadcast(persisting_client):
    place = persisting_client.post(
        "/places", json={"name": "Doomed", "location": "Nowhere", "rating": 2, "description": "Gone soon"}
    ).json()

    with persisting_client.websocket_connect("/ws") as a, persisting_client.websocket_connect("/ws") as b:
        a.receive_json()
        b.receive_json()

        raw = json.dumps({"type": "update", "action": "delete", "id": place["id"]})
        a.send_text(raw)
        assert b.receive_text() == raw

    assert persisting_client.get(f"/places/{place['id']}").status_code == 404


@pytest.mark.anyio
async def test_full_queue_drops_oldest_event():
    hub = _memory_hub(queue_size=2)
    conn = await hub.register(StuckSocket())
    await _settle()  # sender picks up "connected" and blocks

    for n in range(4):
        await hub.broadcast({"n": n})

    queued = [json.loads(conn.queue.get_nowait()) for _ in range(conn.queue.qsize())]
    assert queued == [{"n": 2}, {"n": 3}]
    assert conn.dropped == 2
    await hub.shutdown()


@pytest.mark.anyio
async def test_update_skips_sender_and_failed_persist_is_not_broadcast():
    hub = _memory_hub(persist_updates=True)
    sock_a, sock_b = FakeSocket(), FakeSocket()
    a = await hub.register(sock_a)
    await hub.register(sock_b)

    await hub.handle_message(a, json.dumps({"type": "update", "action": "delete", "id": 999}))
    await _settle()
    assert sock_b.sent == [json.dumps(CONNECTED)]

    raw = json.dumps({"type": "update", "action": "delete", "id": 1})
    await hub.handle_message(a, raw)
    await _settle()
    assert sock_b.sent[-1] == raw
    assert sock_a.sent == [json.dumps(CONNECTED)]
    with hub.backend.open() as repos:
        assert repos.places.get(1) is None
    await hub.shutdown()


@pytest.mark.anyio
async def test_tick_adds_or_refreshes_places():
    hub = _memory_hub(auto_add_probability=0.3)
    sock = FakeSocket()
    await hub.register(sock)

    assert await hub.tick() is None  # disabled

    hub.auto_refresh_enabled = True
    hub.rng = FixedRandom(0.1)
    added = await hub.tick()
    assert added["action"] == "add"
    assert added["data"]["name"] == "Auto Generated Place 1"
    assert added["data"]["location"].startswith("Location ")
    assert 1 <= added["data"]["rating"] <= 5

    hub.rng = FixedRandom(0.9)
    refreshed = await hub.tick()
    assert refreshed["action"] == "refresh"
    assert refreshed["data"]["location"].startswith("Updated Location ")

    await _settle()
    assert json.loads(sock.sent[-1]) == refreshed
    await hub.shutdown()


@pytest.mark.anyio
async def test_generator_stops_with_last_client_and_restarts_on_connect():
    hub = _memory_hub()
    conn = await hub.register(FakeSocket())

    await hub.set_auto_refresh(True)
    assert hub.auto_refresh_running

    await hub.unregister(conn)
    assert not hub.auto_refresh_running
    assert hub.auto_refresh_enabled

    await hub.register(FakeSocket())
    assert hub.auto_refresh_running
    await hub.shutdown()
    assert not hub.auto_refresh_running


@pytest.mark.anyio
async def test_toggle_only_enables_on_literal_true():
    hub = _memory_hub()
    await hub.register(FakeSocket())

    for enabled in ("false", 1, "yes", None):
        await hub.handle_message(None, json.dumps({"type": "toggle-auto-refresh", "enabled": enabled}))
        assert hub.auto_refresh_enabled is False
        assert not hub.auto_refresh_running

    await hub.handle_message(None, json.dumps({"type": "toggle-auto-refresh", "enabled": True}))
    assert hub.auto_refresh_enabled is True
    assert hub.auto_refresh_running
    await hub.shutdown()

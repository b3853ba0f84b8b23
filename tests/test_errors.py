from contextlib import contextmanager

from fastapi.testclient import TestClient

from app.main import create_app
from app.repositories.backends import MemoryBackend
from conftest import make_settings

SECRET = "connection to db-internal.local:5432 refused for user admin"


class BrokenBackend(MemoryBackend):
    @contextmanager
    def open(self):
        raise RuntimeError(SECRET)
        yield


def test_unexpected_error_returns_generic_500(tmp_path):
    app = create_app(make_settings("memory", tmp_path))
    with TestClient(app, raise_server_exceptions=False) as c:
        app.state.backend = BrokenBackend()

        r = c.get("/places")
        assert r.status_code == 500
        assert r.json() == {"error": "Internal server error"}
        assert SECRET not in r.text

        r = c.post("/places", json={"name": "X", "location": "Y", "rating": 3, "description": "Z"})
        assert r.status_code == 500
        assert r.json() == {"error": "Internal server error"}

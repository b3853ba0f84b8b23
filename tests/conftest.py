import os
import tempfile
from pathlib import Path

_tmpdir = Path(tempfile.mkdtemp(prefix="travel_places_test_"))

os.environ.setdefault("DATABASE_URL", f"sqlite:///{(_tmpdir / 'import.db').as_posix()}")
os.environ.setdefault("LOG_DIR", str(_tmpdir / "logs"))
os.environ.setdefault("SEED_ON_STARTUP", "false")
os.environ.setdefault("LIVE_UPDATES", "false")

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app

BACKENDS = ["memory", "sql", "orm"]


def make_settings(backend: str, tmp_path: Path, **overrides) -> Settings:
    values = {
        "storage_backend": backend,
        "database_url": f"sqlite:///{(tmp_path / 'test.db').as_posix()}",
        "seed_on_startup": False,
        "relay_tick_seconds": 3600.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(params=BACKENDS)
def backend_name(request) -> str:
    return request.param


@pytest.fixture()
def client(backend_name, tmp_path):
    app = create_app(make_settings(backend_name, tmp_path))
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def seeded_client(backend_name, tmp_path):
    app = create_app(make_settings(backend_name, tmp_path, seed_on_startup=True))
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def anyio_backend():
    return "asyncio"

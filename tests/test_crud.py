from datetime import datetime

from app.db.crud import bulk_insert, get_places_count, place_ids
from app.models.enums import StorageKind
from app.models.places import Place
from app.models.reviews import Review
from app.repositories.backends import DatabaseBackend


def test_bulk_insert_spans_several_batches(tmp_path):
    backend = DatabaseBackend(f"sqlite:///{(tmp_path / 'bulk.db').as_posix()}", StorageKind.orm)
    backend.create_schema()
    now = datetime.utcnow()
    rows = [
        {"name": f"Place {i}", "location": "Town", "rating": i % 5 + 1, "description": "Generated",
         "video_url": None, "category_id": None, "created_at": now}
        for i in range(450)
    ]

    try:
        assert bulk_insert(backend.engine, Place, rows) == 450
        assert get_places_count(backend.engine) == 450

        ids = place_ids(backend.engine)
        reviews = [{"place_id": pid, "content": "ok", "rating": 4, "author": "Gen", "created_at": now} for pid in ids[:10]]
        assert bulk_insert(backend.engine, Review, reviews) == 10
        assert bulk_insert(backend.engine, Review, []) == 0

        with backend.open() as repos:
            assert len(repos.reviews.list(place_id=ids[0])) == 1
    finally:
        backend.dispose()

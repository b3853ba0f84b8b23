from __future__ import annotations

import logging
import random
import sys
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.db.crud import bulk_insert, get_places_count, place_ids
from app.models.enums import StorageKind
from app.models.categories import Category
from app.models.places import Place
from app.models.reviews import Review
from app.repositories.backends import DatabaseBackend
from app.services.seed import INITIAL_CATEGORIES

logger = logging.getLogger(__name__)

ADJECTIVES = ["Hidden", "Grand", "Old", "Sunny", "Quiet", "Royal", "Wild", "Blue"]
NOUNS = ["Bay", "Peak", "Square", "Castle", "Lagoon", "Garden", "Harbor", "Valley"]
CITIES = ["Lisbon", "Kyoto", "Denver", "Cusco", "Cairo", "Oslo", "Hanoi", "Cape Town"]
AUTHORS = ["Alice", "Bob", "Carol", "Dmitri", "Eve", "Farah"]


def _category_ids(backend: DatabaseBackend) -> list[int]:
    with Session(backend.engine) as db:
        ids = list(db.scalars(select(Category.id)))
        if ids:
            return ids
        db.add_all(Category(name=c["name"], icon=c["icon"]) for c in INITIAL_CATEGORIES)
        db.commit()
        return list(db.scalars(select(Category.id)))


def build_place_rows(n: int, category_ids: list[int], rng: random.Random) -> list[dict]:
    now = datetime.utcnow()
    rows = []
    for i in range(n):
        name = f"{rng.choice(ADJECTIVES)} {rng.choice(NOUNS)} {i + 1}"
        rows.append(
            {
                "name": name,
                "location": rng.choice(CITIES),
                "rating": rng.randint(1, 5),
                "description": f"Generated test place {name}",
                "video_url": None,
                "category_id": rng.choice(category_ids) if category_ids else None,
                "created_at": now - timedelta(minutes=rng.randint(0, 60 * 24 * 30)),
            }
        )
    return rows


def build_review_rows(ids: list[int], per_place: int, rng: random.Random) -> list[dict]:
    now = datetime.utcnow()
    return [
        {
            "place_id": pid,
            "content": f"Review {k + 1} for place {pid}",
            "rating": rng.randint(1, 5),
            "author": rng.choice(AUTHORS),
            "created_at": now - timedelta(minutes=rng.randint(0, 60 * 24 * 30)),
        }
        for pid in ids
        for k in range(rng.randint(0, per_place))
    ]


def main() -> int:
    if len(sys.argv) not in (2, 3):
        print("Usage: python scripts/generate_test_data.py <places> [max_reviews_per_place]")
        return 2

    try:
        n = int(sys.argv[1])
        per_place = int(sys.argv[2]) if len(sys.argv) == 3 else 3
    except ValueError:
        print("Counts must be integers")
        return 2

    configure_logging(log_dir=settings.log_dir, level=settings.log_level)
    rng = random.Random()
    backend = DatabaseBackend(settings.database_url, StorageKind.orm)
    try:
        backend.create_schema()
        before = set(place_ids(backend.engine))
        added_places = bulk_insert(backend.engine, Place, build_place_rows(n, _category_ids(backend), rng))
        new_ids = [pid for pid in place_ids(backend.engine) if pid not in before]
        added_reviews = bulk_insert(backend.engine, Review, build_review_rows(new_ids, per_place, rng))
        total = get_places_count(backend.engine)
    finally:
        backend.dispose()

    logger.info("Generated %s places and %s reviews", added_places, added_reviews)
    print(f"Inserted {added_places} places, {added_reviews} reviews ({total} places total)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

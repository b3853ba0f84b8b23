from __future__ import annotations

from sqlalchemy import Engine, func, insert, select
from sqlalchemy.orm import Session

from app.db.base import Base
from app.models.places import Place


def _dialect_insert(engine: Engine):
    dialect = engine.dialect.name
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert
    elif dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert
    else:
        dialect_insert = insert
    return dialect_insert


def _batch_size(engine: Engine, ncols: int) -> int:
    if engine.dialect.name == "sqlite":
        return max(50, 999 // ncols)
    return 1000


def bulk_insert(engine: Engine, model: type[Base], rows: list[dict]) -> int:
    """Insert plain dict rows in batches sized to the dialect's bind-parameter limit."""
    if not rows:
        return 0

    dialect_insert = _dialect_insert(engine)
    batch_size = _batch_size(engine, len(rows[0]))
    inserted_total = 0

    with Session(engine) as db:
        for i in range(0, len(rows), batch_size):
            chunk = rows[i : i + batch_size]
            res = db.execute(dialect_insert(model).values(chunk))
            db.commit()

            if res.rowcount and res.rowcount > 0:
                inserted_total += int(res.rowcount)

    return inserted_total


def place_ids(engine: Engine) -> list[int]:
    with Session(engine) as db:
        return list(db.scalars(select(Place.id).order_by(Place.id)))


def get_places_count(engine: Engine) -> int:
    with Session(engine) as db:
        return int(db.scalar(select(func.count()).select_from(Place)) or 0)

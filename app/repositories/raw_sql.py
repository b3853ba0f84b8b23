from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, bindparam, text
from sqlalchemy.orm import Session

from app.models.enums import SortField
from app.repositories.base import PlaceFilter, PlaceRepository, PlaceSort
from app.repositories.orm import like_pattern
from app.schemas.places import PlaceCreate, PlaceResponse

_COLUMNS = "id, name, location, rating, description, video_url, category_id, created_at"

_RESULT_TYPES = {
    "id": Integer,
    "name": String,
    "location": String,
    "rating": Integer,
    "description": String,
    "video_url": String,
    "category_id": Integer,
    "created_at": DateTime,
}

# Whitelist: sort columns are interpolated into SQL text.
_SORT_SQL = {
    SortField.name: "name",
    SortField.rating: "rating",
    SortField.location: "location",
    SortField.created_at: "created_at",
}

_INSERT = text(
    "INSERT INTO places (name, location, rating, description, video_url, category_id, created_at) "
    "VALUES (:name, :location, :rating, :description, :video_url, :category_id, :created_at) "
    "RETURNING id"
).bindparams(bindparam("created_at", type_=DateTime))

_UPDATE = text(
    "UPDATE places SET name = :name, location = :location, rating = :rating, "
    "description = :description, video_url = :video_url, category_id = :category_id "
    "WHERE id = :id"
)


def _select(where: str = "", tail: str = ""):
    sql = f"SELECT {_COLUMNS} FROM places"
    if where:
        sql += f" WHERE {where}"
    if tail:
        sql += f" {tail}"
    return text(sql).columns(**_RESULT_TYPES)


def _row_to_place(row) -> PlaceResponse:
    m = row._mapping
    return PlaceResponse(
        id=m["id"],
        name=m["name"],
        location=m["location"],
        rating=m["rating"],
        description=m["description"],
        video_url=m["video_url"],
        category_id=m["category_id"],
        created_at=m["created_at"],
    )


def _params(data: PlaceCreate) -> dict:
    return {
        "name": data.name,
        "location": data.location,
        "rating": data.rating,
        "description": data.description,
        "video_url": data.video_url,
        "category_id": data.category_id,
    }


class SqlPlaceRepository(PlaceRepository):
    """Places through hand-written SQL against the ``places`` table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list(self, flt: PlaceFilter | None = None, sort: PlaceSort | None = None) -> list[PlaceResponse]:
        flt = flt or PlaceFilter()
        sort = sort or PlaceSort()
        clauses: list[str] = []
        params: dict = {}

        if flt.category_id is not None:
            clauses.append("category_id = :category_id")
            params["category_id"] = flt.category_id
        if flt.min_rating is not None:
            clauses.append("rating >= :min_rating")
            params["min_rating"] = flt.min_rating
        needle = flt.needle
        if needle is not None:
            clauses.append(
                "(lower(name) LIKE :pattern ESCAPE '\\' "
                "OR lower(location) LIKE :pattern ESCAPE '\\' "
                "OR lower(description) LIKE :pattern ESCAPE '\\')"
            )
            params["pattern"] = like_pattern(needle)

        if sort.field is not None:
            direction = "DESC" if sort.descending else "ASC"
            tail = f"ORDER BY {_SORT_SQL[sort.field]} {direction}, id ASC"
        else:
            tail = "ORDER BY id ASC"
        if flt.limit is not None:
            tail += " LIMIT :limit OFFSET :offset"
            params.update(limit=flt.limit, offset=flt.offset)
        elif flt.offset:
            # SQLite needs a LIMIT before OFFSET; -1 means "no limit".
            tail += " LIMIT -1 OFFSET :offset"
            params["offset"] = flt.offset

        rows = self.db.execute(_select(" AND ".join(clauses), tail), params).all()
        return [_row_to_place(r) for r in rows]

    def get(self, place_id: int) -> PlaceResponse | None:
        row = self.db.execute(_select("id = :id"), {"id": place_id}).first()
        return _row_to_place(row) if row else None

    def create(self, data: PlaceCreate) -> PlaceResponse:
        params = _params(data)
        params["created_at"] = datetime.utcnow()
        new_id = self.db.execute(_INSERT, params).scalar_one()
        self.db.commit()
        return self.get(new_id)

    def update(self, place_id: int, data: PlaceCreate) -> PlaceResponse | None:
        params = _params(data)
        params["id"] = place_id
        result = self.db.execute(_UPDATE, params)
        if result.rowcount == 0:
            self.db.rollback()
            return None
        self.db.commit()
        return self.get(place_id)

    def delete(self, place_id: int) -> bool:
        self.db.execute(text("DELETE FROM reviews WHERE place_id = :id"), {"id": place_id})
        result = self.db.execute(text("DELETE FROM places WHERE id = :id"), {"id": place_id})
        if result.rowcount == 0:
            self.db.rollback()
            return False
        self.db.commit()
        return True

    def count(self) -> int:
        return int(self.db.execute(text("SELECT COUNT(*) FROM places")).scalar() or 0)

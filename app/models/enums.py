from __future__ import annotations

from enum import Enum


class StorageKind(str, Enum):
    memory = "memory"
    sql = "sql"
    orm = "orm"


class SortField(str, Enum):
    name = "name"
    rating = "rating"
    location = "location"
    created_at = "createdAt"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class UpdateAction(str, Enum):
    add = "add"
    refresh = "refresh"
    delete = "delete"

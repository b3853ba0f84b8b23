from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from app.core.config import Settings
from app.db.base import Base
from app.db.session import make_engine, make_session_factory
from app.models.enums import StorageKind
from app.repositories.base import Repositories
from app.repositories.memory import MemoryStore
from app.repositories.orm import OrmCategoryRepository, OrmPlaceRepository, OrmReviewRepository
from app.repositories.raw_sql import SqlPlaceRepository

import app.models  # noqa: F401  (register tables on Base.metadata)

logger = logging.getLogger(__name__)


class StorageBackend:
    """Hands out repository bundles; one bundle per unit of work (request, relay event)."""

    kind: StorageKind

    @contextmanager
    def open(self) -> Iterator[Repositories]:
        raise NotImplementedError

    def create_schema(self) -> None:
        pass

    def dispose(self) -> None:
        pass


class MemoryBackend(StorageBackend):
    kind = StorageKind.memory

    def __init__(self, store: MemoryStore | None = None) -> None:
        self.store = store or MemoryStore()

    @contextmanager
    def open(self) -> Iterator[Repositories]:
        yield self.store.repositories()


class DatabaseBackend(StorageBackend):
    """SQLAlchemy-backed storage. ``kind`` picks the place repository flavour."""

    def __init__(self, database_url: str, kind: StorageKind = StorageKind.orm) -> None:
        self.kind = kind
        self.engine = make_engine(database_url)
        self.session_factory = make_session_factory(self.engine)

    @contextmanager
    def open(self) -> Iterator[Repositories]:
        db = self.session_factory()
        try:
            places = SqlPlaceRepository(db) if self.kind == StorageKind.sql else OrmPlaceRepository(db)
            yield Repositories(
                places=places,
                categories=OrmCategoryRepository(db),
                reviews=OrmReviewRepository(db),
            )
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("DB ready (%s, %s)", self.engine.dialect.name, self.kind.value)

    def dispose(self) -> None:
        self.engine.dispose()


def build_backend(settings: Settings) -> StorageBackend:
    try:
        kind = StorageKind(settings.storage_backend.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}") from None

    if kind == StorageKind.memory:
        return MemoryBackend()
    return DatabaseBackend(settings.database_url, kind)

from __future__ import annotations

import logging

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.repositories.backends import build_backend
from app.services.seed import seed_catalog

logger = logging.getLogger(__name__)


def main() -> int:
    configure_logging(log_dir=settings.log_dir, level=settings.log_level)

    backend = build_backend(settings)
    try:
        backend.create_schema()
        with backend.open() as repos:
            counts = seed_catalog(repos)
    finally:
        backend.dispose()

    print(f"Seed finished: {counts}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import Settings, settings as default_settings
from app.core.errors import register_error_handlers
from app.core.logging_config import configure_logging
from app.repositories.backends import StorageBackend, build_backend
from app.routers import categories, places, realtime, reviews
from app.services.relay import RelayHub
from app.services.seed import seed_catalog

logger = logging.getLogger(__name__)


def _prepare_storage(backend: StorageBackend, seed: bool) -> None:
    backend.create_schema()
    if not seed:
        return
    with backend.open() as repos:
        counts = seed_catalog(repos)
    if any(counts.values()):
        logger.info("Seeded catalog: %s", counts)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(log_dir=settings.log_dir, level=settings.log_level)

    backend = build_backend(settings)
    relay = RelayHub.from_settings(backend, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await anyio.to_thread.run_sync(_prepare_storage, backend, settings.seed_on_startup)
        logger.info("Travel Places API started (backend=%s)", backend.kind.value)
        yield
        await relay.shutdown()
        backend.dispose()
        logger.info("Travel Places API stopped")

    app = FastAPI(title="Travel Places", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend
    app.state.relay = relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error")
            return JSONResponse(status_code=500, content={"error": "Internal server error"})
        duration_ms = int((time.time() - start) * 1000)
        logger.info("%s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration_ms)
        return response

    register_error_handlers(app)

    app.include_router(places.router)
    app.include_router(categories.router)
    app.include_router(reviews.router)
    app.include_router(realtime.router)

    return app


app = create_app()

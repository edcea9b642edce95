from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.routes import health, mixer, upload
from .core.config import Settings, get_settings
from .core.logging import setup_logging
from .services.index import LibraryService


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    service = LibraryService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.ensure_loaded()
        yield
        await service.close()

    app = FastAPI(
        title="Bliss Mixer",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.library_service = service
    app.include_router(health.router)
    app.include_router(mixer.router)
    app.include_router(upload.router)
    return app

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .container import Container
from .logging_setup import configure_logging
from .routes import config_router, folder_cache_router, folders_router


def create_app(container: Container | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance."""

    container = container or Container()
    configure_logging(container.settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container.cache_sweeper.start()
        try:
            yield
        finally:
            await container.cache_sweeper.stop()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(folders_router)
    app.include_router(folder_cache_router)
    app.include_router(config_router)

    @app.get("/")
    def read_root() -> dict[str, str]:
        return {
            "project": "participant-drive",
            "status": "running",
        }

    return app

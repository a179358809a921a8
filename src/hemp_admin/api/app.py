"""FastAPI application factory."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hemp_admin.api.admin import router as admin_router
from hemp_admin.app_logging import configure_logging
from hemp_admin.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container.cache_sweeper.start()
        logger.info(
            "Cache sweeper interval: %ss",
            app.state.container.cache_sweeper.interval_seconds,
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(title="Hemp Admin", lifespan=lifespan)
    app.state.container = container
    app.state.started_at = time.monotonic()

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app

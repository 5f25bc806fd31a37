"""FastAPI application factory and lifespan management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from modindex.config import Settings
from modindex.middleware.logging import RequestLoggingMiddleware
from modindex.routes import health, index
from modindex.runtime import SearchRuntime, build_runtime

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle events.

    Builds the indexing runtime (unless one was injected), prepares the
    search index and starts the flush and reindex jobs. On shutdown the
    scheduler stops ticking, in-flight runs finish and connections close.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    logger.info("api_startup", host=settings.host, port=settings.port)

    runtime: SearchRuntime | None = getattr(app.state, "runtime", None)
    if runtime is None:
        runtime = build_runtime(settings)
        app.state.runtime = runtime

    await runtime.start()
    try:
        yield
    finally:
        await runtime.aclose()
        logger.info("api_shutdown")


def create_app(settings: Settings | None = None, runtime: SearchRuntime | None = None) -> FastAPI:
    """Factory function to create configured FastAPI application.

    Args:
        settings: Configuration instance. Loaded from the environment if None.
        runtime: Prebuilt indexing runtime; built during startup if None.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Mod Search Indexer",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/v1/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/v1/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings
    if runtime is not None:
        app.state.runtime = runtime

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, prefix="/api/v1")
    app.include_router(index.router, prefix="/api/v1")

    return app

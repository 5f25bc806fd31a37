"""Entry point for the indexer service."""

import argparse
import asyncio
import contextlib
import sys

import structlog
import uvicorn
from pydantic import ValidationError

from modindex.app import create_app
from modindex.config import Settings
from modindex.errors import SearchEngineError
from modindex.logging import configure_logging
from modindex.runtime import build_runtime
from modindex.search.schemas import JobOutcome

logger = structlog.get_logger()

EXIT_CONFIG_ERROR = 2


def serve(settings: Settings) -> None:
    """Run uvicorn with the API and background index jobs.

    Uvicorn handles SIGTERM/SIGINT; the application lifespan then stops
    the scheduler and waits for in-flight runs.

    Args:
        settings: Server configuration.
    """
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="warning",
        access_log=False,
        timeout_graceful_shutdown=int(settings.shutdown_timeout),
    )


async def reindex_once(settings: Settings) -> bool:
    """Run a single full reindex without starting the scheduler.

    Args:
        settings: Service configuration.

    Returns:
        True if the reindex succeeded.
    """
    runtime = build_runtime(settings)
    try:
        await runtime.client.ensure_index()
        result = await runtime.jobs.full_reindex()
    except SearchEngineError as e:
        logger.error("search_index_prepare_failed", error=str(e))
        return False
    finally:
        await runtime.client.close()
        await runtime.store.dispose()
    return result.outcome is JobOutcome.SUCCEEDED


def main(argv: list[str] | None = None) -> None:
    """Entry point for python -m modindex."""
    parser = argparse.ArgumentParser(prog="modindex", description="Mod catalog search indexer")
    parser.add_argument(
        "command",
        nargs="?",
        choices=["serve", "reindex"],
        default="serve",
        help="serve the API with background jobs (default) or run one full reindex",
    )
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as e:
        configure_logging()
        logger.error("invalid_configuration", errors=e.errors(include_url=False))
        sys.exit(EXIT_CONFIG_ERROR)

    configure_logging(debug=settings.debug, json_logs=not settings.debug)

    if args.command == "reindex":
        ok = asyncio.run(reindex_once(settings))
        sys.exit(0 if ok else 1)

    with contextlib.suppress(KeyboardInterrupt):
        serve(settings)

    sys.exit(0)


if __name__ == "__main__":
    main()

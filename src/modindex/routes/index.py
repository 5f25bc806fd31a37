"""Admin endpoints for inspecting and driving the search index sync."""

import secrets
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, Field

from modindex.catalog.ids import InvalidIdError, parse_base62
from modindex.runtime import SearchRuntime
from modindex.search.schemas import FlushResult, ReindexResult
from modindex.search.sync import ModEvent

logger = structlog.get_logger()


async def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None),
) -> None:
    """Check the X-API-Key header when an admin key is configured.

    Raises:
        HTTPException: 401 if the header is missing or wrong.
    """
    expected: str = request.app.state.settings.key
    if not expected:
        return
    if not x_api_key:
        raise HTTPException(status_code=401, detail="Missing X-API-Key header")
    if not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid API key")


router = APIRouter(
    prefix="/admin/index",
    tags=["admin"],
    dependencies=[Depends(require_api_key)],
)


class IndexStatusResponse(BaseModel):
    """Snapshot of the index sync subsystem.

    Attributes:
        index_name: Primary search index.
        host_tag: Prefix of this system's document ids.
        pending_documents: Documents waiting for the next flush.
        scheduler_running: Whether the background jobs are ticking.
        jobs: Per-job run statistics.
        last_flush: Most recent flush that had work to do.
        last_reindex: Most recent full reindex.
    """

    index_name: str
    host_tag: str
    pending_documents: int
    scheduler_running: bool
    jobs: list[dict[str, Any]]
    last_flush: FlushResult | None = None
    last_reindex: ReindexResult | None = None


class ModEventRequest(BaseModel):
    """Request body reporting a lifecycle event for a mod."""

    type: ModEvent = Field(description="What happened to the mod")


class ModEventResponse(BaseModel):
    """Result of applying a mod lifecycle event."""

    mod_id: str
    document_id: str
    event: ModEvent
    applied: bool


def _runtime(request: Request) -> SearchRuntime:
    return request.app.state.runtime


@router.get("/status", response_model=IndexStatusResponse)
async def index_status(request: Request) -> IndexStatusResponse:
    """Report queue depth, job statistics and the latest job results."""
    runtime = _runtime(request)
    return IndexStatusResponse(
        index_name=runtime.settings.index_name,
        host_tag=runtime.settings.host_tag,
        pending_documents=len(runtime.queue),
        scheduler_running=runtime.scheduler.running,
        jobs=runtime.scheduler.jobs,
        last_flush=runtime.jobs.last_flush,
        last_reindex=runtime.jobs.last_reindex,
    )


@router.post("/flush", response_model=FlushResult)
async def flush_now(request: Request) -> FlushResult:
    """Flush the creation queue immediately."""
    result = await _runtime(request).jobs.flush()
    logger.info("admin_flush", outcome=result.outcome.value, documents=result.documents)
    return result


@router.post("/reindex", response_model=ReindexResult)
async def reindex_now(request: Request) -> ReindexResult:
    """Run a full reindex and wait for it to finish.

    Returns:
        The reindex result; a failed run is reported in the body, not as
        an HTTP error.
    """
    result = await _runtime(request).jobs.full_reindex()
    logger.info("admin_reindex", outcome=result.outcome.value, documents=result.documents)
    return result


@router.post(
    "/mods/{mod_id}/events",
    response_model=ModEventResponse,
    summary="Report a mod lifecycle event",
    description="Lets request handlers running in other processes drive the index sync.",
)
async def mod_event(mod_id: str, body: ModEventRequest, request: Request) -> ModEventResponse:
    """Apply a lifecycle event to one mod.

    Args:
        mod_id: Base62 public id of the mod.
        body: The event to apply.
        request: FastAPI request (provides access to app state).

    Returns:
        Whether the index operation was applied or queued.

    Raises:
        HTTPException: 400 if the id is not valid base62.
    """
    try:
        numeric_id = parse_base62(mod_id)
    except InvalidIdError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    runtime = _runtime(request)
    applied = await runtime.sync.handle(body.type, numeric_id)
    return ModEventResponse(
        mod_id=mod_id,
        document_id=runtime.mapper.document_id(numeric_id),
        event=body.type,
        applied=applied,
    )

"""Health check endpoints for liveness and readiness probes."""
from typing import Literal

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from modindex.errors import StoreError
from modindex.runtime import SearchRuntime

router = APIRouter(prefix="/health", tags=["health"])


class LivenessResponse(BaseModel):
    """Response model for liveness probe.

    Attributes:
        status: Always 'alive' when process is running.
    """

    status: Literal["alive"]


class ReadinessCheck(BaseModel):
    """Individual dependency check result.

    Attributes:
        name: Identifier for the dependency being checked.
        status: Result of the check ('ok' or 'failed').
        message: Error details when status is 'failed'.
    """

    name: str
    status: Literal["ok", "failed"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Response model for readiness probe.

    Attributes:
        status: Overall readiness ('ready' or 'not_ready').
        checks: List of individual dependency check results.
    """

    status: Literal["ready", "not_ready"]
    checks: list[ReadinessCheck]


async def _check_database(runtime: SearchRuntime) -> ReadinessCheck:
    try:
        await runtime.store.ping()
    except StoreError as e:
        cause = e.__cause__ or e
        return ReadinessCheck(name="database", status="failed", message=str(cause))
    return ReadinessCheck(name="database", status="ok")


async def _check_search_engine(runtime: SearchRuntime) -> ReadinessCheck:
    if await runtime.client.is_healthy():
        return ReadinessCheck(name="search_engine", status="ok")
    return ReadinessCheck(
        name="search_engine",
        status="failed",
        message="Search engine unavailable",
    )


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe endpoint.

    Returns immediate success if the process is running.

    Returns:
        Liveness status response.
    """
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> JSONResponse:
    """Readiness probe endpoint.

    Validates that the catalog database answers a trivial query and the
    search engine reports itself available. Returns 200 if all checks
    pass, 503 if any fail.

    Returns:
        Readiness status with individual check results.
    """
    runtime: SearchRuntime = request.app.state.runtime
    checks = [
        await _check_database(runtime),
        await _check_search_engine(runtime),
    ]
    all_ok = all(c.status == "ok" for c in checks)
    response = ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        checks=checks,
    )
    code = status.HTTP_200_OK if all_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=code)

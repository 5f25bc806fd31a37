"""Tests for the runtime lifecycle and the background jobs end to end."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCatalogStore, FakeSearchEngine
from modindex.app import create_app
from modindex.catalog import ModStatus
from modindex.config import Settings
from modindex.errors import SearchEngineError
from modindex.runtime import FLUSH_JOB, REINDEX_JOB, SearchRuntime, build_runtime
from modindex.search.schemas import JobOutcome


@pytest.fixture
def scheduled_runtime(
    settings: Settings, catalog: FakeCatalogStore, search_engine: FakeSearchEngine
) -> SearchRuntime:
    enabled = settings.model_copy(update={"enable_scheduler": True})
    return build_runtime(enabled, store=catalog, client=search_engine)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_start_runs_reindex_and_flush(
    scheduled_runtime: SearchRuntime, catalog: FakeCatalogStore, search_engine: FakeSearchEngine
) -> None:
    catalog.put(1)
    catalog.put(2, status=ModStatus.REJECTED)

    await scheduled_runtime.start()
    await asyncio.sleep(0.05)

    assert set(search_engine.documents) == {"local-1"}
    assert {job["name"] for job in scheduled_runtime.scheduler.jobs} == {FLUSH_JOB, REINDEX_JOB}

    catalog.put(3)
    await scheduled_runtime.sync.notify_became_searchable(3)
    await asyncio.sleep(0.15)

    assert "local-3" in search_engine.documents
    await scheduled_runtime.aclose()


@pytest.mark.asyncio
async def test_background_jobs_converge_after_engine_failure(
    scheduled_runtime: SearchRuntime, catalog: FakeCatalogStore, search_engine: FakeSearchEngine
) -> None:
    await scheduled_runtime.start()
    await asyncio.sleep(0.02)

    catalog.put(1)
    catalog.put(2)
    await scheduled_runtime.sync.notify_became_searchable(1)
    catalog.set_status(2, ModStatus.APPROVED)
    search_engine.fail_upserts = 1
    await asyncio.sleep(0.4)

    assert set(search_engine.documents) == {"local-1", "local-2"}
    await scheduled_runtime.aclose()


@pytest.mark.asyncio
async def test_aclose_flushes_and_releases(
    runtime: SearchRuntime, catalog: FakeCatalogStore, search_engine: FakeSearchEngine
) -> None:
    catalog.put(1)
    await runtime.start()
    await runtime.sync.notify_became_searchable(1)

    await runtime.aclose()

    assert "local-1" in search_engine.documents
    assert runtime.jobs.last_flush is not None
    assert runtime.jobs.last_flush.outcome is JobOutcome.SUCCEEDED
    assert search_engine.closed is True
    assert catalog.disposed is True


@pytest.mark.asyncio
async def test_unreachable_engine_at_start_is_not_fatal(
    scheduled_runtime: SearchRuntime, search_engine: FakeSearchEngine
) -> None:
    search_engine.fail_ensure = True

    await scheduled_runtime.start()

    assert scheduled_runtime.scheduler.running is True
    await scheduled_runtime.aclose()
    assert scheduled_runtime.scheduler.running is False


def test_lifespan_starts_and_stops_runtime(
    settings: Settings, runtime: SearchRuntime, search_engine: FakeSearchEngine
) -> None:
    app = create_app(settings, runtime=runtime)

    with TestClient(app) as client:
        assert client.get("/api/v1/health/live").status_code == 200

    assert search_engine.closed is True


@pytest.mark.asyncio
async def test_shutdown_timeout_skips_final_flush(
    settings: Settings,
    catalog: FakeCatalogStore,
    search_engine: FakeSearchEngine,
    make_document,
) -> None:
    impatient = settings.model_copy(update={"enable_scheduler": True, "shutdown_timeout": 0.05})
    runtime = build_runtime(impatient, store=catalog, client=search_engine)  # type: ignore[arg-type]
    search_engine.upsert_gate = asyncio.Event()

    await runtime.start()
    await asyncio.sleep(0.01)
    runtime.queue.add(make_document("local-1"))
    await runtime.aclose()

    assert runtime.queue.pending_ids() == ["local-1"]
    assert runtime.jobs.last_flush is None
    assert search_engine.closed is True
    assert catalog.disposed is True

    search_engine.upsert_gate.set()
    await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_store_disposed_when_client_close_fails(
    runtime: SearchRuntime, catalog: FakeCatalogStore, search_engine: FakeSearchEngine
) -> None:
    search_engine.fail_close = True

    with pytest.raises(SearchEngineError):
        await runtime.aclose()

    assert catalog.disposed is True

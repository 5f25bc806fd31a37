"""Admin index endpoint tests."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCatalogStore, FakeSearchEngine
from modindex.app import create_app
from modindex.catalog import ModStatus
from modindex.config import Settings
from modindex.runtime import SearchRuntime


def test_status_reports_pending_documents(
    client: TestClient, runtime: SearchRuntime, catalog: FakeCatalogStore, make_document
) -> None:
    """Status shows queue depth and the absence of job results."""
    runtime.queue.add(make_document("local-1"))

    response = client.get("/api/v1/admin/index/status")

    assert response.status_code == 200
    data = response.json()
    assert data["index_name"] == "mods"
    assert data["host_tag"] == "local"
    assert data["pending_documents"] == 1
    assert data["scheduler_running"] is False
    assert data["jobs"] == []
    assert data["last_flush"] is None
    assert data["last_reindex"] is None


def test_flush_endpoint_writes_queue(
    client: TestClient, runtime: SearchRuntime, search_engine: FakeSearchEngine, make_document
) -> None:
    """Flush drains the queue into the index."""
    runtime.queue.add(make_document("local-1"))

    response = client.post("/api/v1/admin/index/flush")

    assert response.status_code == 200
    assert response.json()["outcome"] == "succeeded"
    assert response.json()["documents"] == 1
    assert "local-1" in search_engine.documents


def test_flush_endpoint_skips_empty_queue(client: TestClient) -> None:
    """An empty queue reports a skipped flush."""
    response = client.post("/api/v1/admin/index/flush")
    assert response.json()["outcome"] == "skipped"


def test_reindex_endpoint(
    client: TestClient, catalog: FakeCatalogStore, search_engine: FakeSearchEngine
) -> None:
    """Reindex rebuilds the index and shows up in status."""
    catalog.put(1)
    catalog.put(2, status=ModStatus.DRAFT)

    response = client.post("/api/v1/admin/index/reindex")

    assert response.status_code == 200
    assert response.json()["outcome"] == "succeeded"
    assert response.json()["documents"] == 1
    assert set(search_engine.documents) == {"local-1"}

    status = client.get("/api/v1/admin/index/status").json()
    assert status["last_reindex"]["documents"] == 1


def test_reindex_failure_reported_in_body(
    client: TestClient, catalog: FakeCatalogStore
) -> None:
    """A failed reindex is a 200 with a failed outcome."""
    catalog.fail = True

    response = client.post("/api/v1/admin/index/reindex")

    assert response.status_code == 200
    assert response.json()["outcome"] == "failed"
    assert response.json()["error"] == "database unavailable"


def test_searchable_event_queues_document(
    client: TestClient, runtime: SearchRuntime, catalog: FakeCatalogStore
) -> None:
    """A searchable event for a base62 id queues the mod."""
    catalog.put(42)

    response = client.post("/api/v1/admin/index/mods/g/events", json={"type": "mod.searchable"})

    assert response.status_code == 200
    assert response.json() == {
        "mod_id": "g",
        "document_id": "local-g",
        "event": "mod.searchable",
        "applied": True,
    }
    assert runtime.queue.pending_ids() == ["local-g"]


def test_deleted_event_removes_document(
    client: TestClient, search_engine: FakeSearchEngine, make_document
) -> None:
    """A deleted event removes the document right away."""
    search_engine.documents["local-g"] = make_document("local-g").to_index_payload()

    response = client.post("/api/v1/admin/index/mods/g/events", json={"type": "mod.deleted"})

    assert response.json()["applied"] is True
    assert "local-g" not in search_engine.documents


def test_invalid_mod_id_returns_400(client: TestClient) -> None:
    """Ids outside the base62 alphabet are rejected."""
    response = client.post("/api/v1/admin/index/mods/not-an-id/events", json={"type": "mod.deleted"})
    assert response.status_code == 400


def test_unknown_event_type_returns_422(client: TestClient) -> None:
    """Only known event types are accepted."""
    response = client.post("/api/v1/admin/index/mods/g/events", json={"type": "mod.exploded"})
    assert response.status_code == 422


class TestApiKey:
    @pytest.fixture
    def keyed_client(self, settings: Settings, runtime: SearchRuntime) -> TestClient:
        keyed = settings.model_copy(update={"key": "s3cret"})
        return TestClient(create_app(keyed, runtime=runtime))

    def test_missing_key_rejected(self, keyed_client: TestClient) -> None:
        response = keyed_client.get("/api/v1/admin/index/status")
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing X-API-Key header"

    def test_wrong_key_rejected(self, keyed_client: TestClient) -> None:
        response = keyed_client.get(
            "/api/v1/admin/index/status", headers={"X-API-Key": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid API key"

    def test_correct_key_accepted(self, keyed_client: TestClient) -> None:
        response = keyed_client.get(
            "/api/v1/admin/index/status", headers={"X-API-Key": "s3cret"}
        )
        assert response.status_code == 200

    def test_health_needs_no_key(self, keyed_client: TestClient) -> None:
        assert keyed_client.get("/api/v1/health/live").status_code == 200


def test_searchable_event_for_rejected_mod_not_applied(
    client: TestClient, runtime: SearchRuntime, catalog: FakeCatalogStore
) -> None:
    """A searchable event cannot queue a mod the catalog shows as rejected."""
    catalog.put(42, status=ModStatus.REJECTED)

    response = client.post("/api/v1/admin/index/mods/g/events", json={"type": "mod.searchable"})

    assert response.status_code == 200
    assert response.json()["applied"] is False
    assert len(runtime.queue) == 0


def test_reconcile_event_removes_hidden_mod(
    client: TestClient, catalog: FakeCatalogStore, search_engine: FakeSearchEngine, make_document
) -> None:
    """Reconcile removes a mod whose current status is hidden."""
    catalog.put(42, status=ModStatus.DRAFT)
    search_engine.documents["local-g"] = make_document("local-g").to_index_payload()

    response = client.post("/api/v1/admin/index/mods/g/events", json={"type": "mod.reconcile"})

    assert response.json() == {
        "mod_id": "g",
        "document_id": "local-g",
        "event": "mod.reconcile",
        "applied": True,
    }
    assert "local-g" not in search_engine.documents

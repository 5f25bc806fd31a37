"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import asyncio
import dataclasses
from collections.abc import AsyncIterator, Callable, Iterable
from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi.testclient import TestClient

from modindex.app import create_app
from modindex.catalog import ModRecord, ModStatus, Owner
from modindex.config import Settings
from modindex.errors import SearchEngineError, StoreError
from modindex.runtime import SearchRuntime, build_runtime
from modindex.search.schemas import SearchDocument

PUBLISHED = datetime(2021, 6, 1, 12, 0, tzinfo=UTC)
UPDATED = datetime(2021, 7, 1, 8, 30, tzinfo=UTC)


class FakeCatalogStore:
    """In-memory stand-in for CatalogStore."""

    def __init__(self) -> None:
        self.mods: dict[int, ModRecord] = {}
        self.owners: dict[int, Owner] = {}
        self.categories: dict[int, list[str]] = {}
        self.fail = False
        self.disposed = False

    def put(
        self,
        mod_id: int,
        *,
        status: ModStatus = ModStatus.APPROVED,
        title: str | None = None,
        owner: str | None = "alice",
        categories: Iterable[str] = (),
        downloads: int = 0,
        follows: int = 0,
        icon_url: str | None = None,
        slug: str | None = None,
        is_nsfw: bool = False,
    ) -> ModRecord:
        team_id = 1000 + mod_id
        record = ModRecord(
            id=mod_id,
            team_id=team_id,
            title=title or f"Mod {mod_id}",
            description=f"Description of mod {mod_id}",
            downloads=downloads,
            follows=follows,
            icon_url=icon_url,
            slug=slug,
            is_nsfw=is_nsfw,
            published=PUBLISHED,
            updated=UPDATED,
            status=status,
        )
        self.mods[mod_id] = record
        if owner is None:
            self.owners.pop(team_id, None)
        else:
            self.owners[team_id] = Owner(id=500 + mod_id, username=owner)
        self.categories[mod_id] = sorted(categories)
        return record

    def set_status(self, mod_id: int, status: ModStatus) -> None:
        self.mods[mod_id] = dataclasses.replace(self.mods[mod_id], status=status)

    def edit(self, mod_id: int, **changes: Any) -> None:
        self.mods[mod_id] = dataclasses.replace(self.mods[mod_id], **changes)

    def remove(self, mod_id: int) -> None:
        self.mods.pop(mod_id, None)

    def _check(self) -> None:
        if self.fail:
            raise StoreError("database unavailable")

    async def fetch_mod(self, mod_id: int) -> ModRecord | None:
        self._check()
        return self.mods.get(mod_id)

    async def stream_mods(self) -> AsyncIterator[ModRecord]:
        self._check()
        for mod_id in sorted(self.mods):
            yield self.mods[mod_id]

    async def fetch_owner(self, team_id: int) -> Owner | None:
        self._check()
        return self.owners.get(team_id)

    async def fetch_categories(self, mod_id: int) -> list[str]:
        self._check()
        return list(self.categories.get(mod_id, []))

    async def ping(self) -> None:
        self._check()

    async def dispose(self) -> None:
        self.disposed = True


class FakeSearchEngine:
    """In-memory stand-in for SearchIndexClient."""

    def __init__(self, index_name: str = "mods", extra_indexes: Iterable[str] = ()) -> None:
        self.index_name = index_name
        self.indexes: dict[str, dict[str, dict[str, Any]]] = {index_name: {}}
        for name in extra_indexes:
            self.indexes[name] = {}
        self.fail_upserts = 0
        self.fail_deletes = False
        self.fail_ensure = False
        self.fail_close = False
        self.upsert_gate: asyncio.Event | None = None
        self.healthy = True
        self.closed = False
        self.upsert_batches: list[list[str]] = []
        self.delete_calls: list[str] = []

    @property
    def documents(self) -> dict[str, dict[str, Any]]:
        return self.indexes[self.index_name]

    async def ensure_index(self) -> None:
        if self.fail_ensure:
            raise SearchEngineError("engine unavailable")

    async def upsert_documents(self, documents: Iterable[SearchDocument]) -> int:
        if self.upsert_gate is not None:
            await self.upsert_gate.wait()
        if self.fail_upserts:
            self.fail_upserts -= 1
            raise SearchEngineError("engine unavailable")
        batch = list(documents)
        if not batch:
            return 0
        for document in batch:
            self.documents[document.id] = document.to_index_payload()
        self.upsert_batches.append([document.id for document in batch])
        return len(batch)

    async def delete_document(self, document_id: str) -> None:
        if self.fail_deletes:
            raise SearchEngineError("engine unavailable")
        self.delete_calls.append(document_id)
        for documents in self.indexes.values():
            documents.pop(document_id, None)

    async def delete_documents(self, document_ids: Iterable[str]) -> int:
        ids = list(document_ids)
        for document_id in ids:
            self.documents.pop(document_id, None)
        return len(ids)

    async def list_indexes(self) -> list[str]:
        return list(self.indexes)

    async def document_ids(self, prefix: str = "") -> set[str]:
        return {document_id for document_id in self.documents if document_id.startswith(prefix)}

    async def is_healthy(self) -> bool:
        return self.healthy

    async def close(self) -> None:
        self.closed = True
        if self.fail_close:
            raise SearchEngineError("connection reset while closing")


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        host="127.0.0.1",
        port=8000,
        debug=True,
        database_url="sqlite+aiosqlite:///:memory:",
        meilisearch_url="http://127.0.0.1:7700",
        meilisearch_key="test-master-key",
        site_url="https://mods.example.com/",
        host_tag="local",
        flush_interval=0.05,
        reindex_interval=0.2,
        shutdown_timeout=2.0,
        enable_scheduler=False,
    )


@pytest.fixture
def catalog() -> FakeCatalogStore:
    return FakeCatalogStore()


@pytest.fixture
def search_engine() -> FakeSearchEngine:
    return FakeSearchEngine(extra_indexes=["mods_by_downloads"])


@pytest.fixture
def runtime(
    settings: Settings,
    catalog: FakeCatalogStore,
    search_engine: FakeSearchEngine,
) -> SearchRuntime:
    """Indexing runtime wired to the in-memory fakes."""
    return build_runtime(settings, store=catalog, client=search_engine)  # type: ignore[arg-type]


@pytest.fixture
def client(settings: Settings, runtime: SearchRuntime) -> TestClient:
    """Create test client with configured app."""
    app = create_app(settings, runtime=runtime)
    return TestClient(app)


@pytest.fixture
def make_document() -> Callable[..., SearchDocument]:
    """Factory for standalone search documents."""

    def factory(document_id: str, **overrides: Any) -> SearchDocument:
        fields: dict[str, Any] = {
            "id": document_id,
            "title": f"Title {document_id}",
            "description": "A mod",
            "categories": ["utility"],
            "downloads": 10,
            "follows": 2,
            "page_url": f"https://mods.example.com/mod/{document_id}",
            "author": "alice",
            "author_url": "https://mods.example.com/user/8",
            "date_created": PUBLISHED,
            "created_timestamp": int(PUBLISHED.timestamp()),
            "date_modified": UPDATED,
            "modified_timestamp": int(UPDATED.timestamp()),
            "host": "local",
        }
        fields.update(overrides)
        return SearchDocument(**fields)

    return factory

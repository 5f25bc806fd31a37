"""Capability wrapper around the Meilisearch HTTP API."""

from collections.abc import Sequence
from typing import Any

import httpx
import structlog
from meilisearch_python_sdk import AsyncClient
from meilisearch_python_sdk.errors import MeilisearchError
from meilisearch_python_sdk.index import AsyncIndex

from modindex.errors import SearchEngineError
from modindex.search.schemas import SearchDocument

logger = structlog.get_logger()

PRIMARY_KEY = "id"

SEARCHABLE_ATTRIBUTES: list[str] = ["title", "description", "categories", "author"]
FILTERABLE_ATTRIBUTES: list[str] = ["categories", "host", "is_nsfw", "author"]
SORTABLE_ATTRIBUTES: list[str] = [
    "downloads",
    "follows",
    "created_timestamp",
    "modified_timestamp",
]

# Page size when listing document ids for the reindex diff
_ID_PAGE_SIZE = 1000

_ENGINE_ERRORS = (MeilisearchError, httpx.HTTPError)


class SearchIndexClient:
    """Upsert, delete and list operations over a Meilisearch deployment.

    Writes go to the primary index; deletes fan out to every index so a
    removed mod disappears from all of them.
    """

    def __init__(
        self,
        client: AsyncClient,
        index_name: str,
        *,
        batch_size: int = 1000,
        task_timeout_ms: int = 10_000,
    ) -> None:
        """Initialize wrapper.

        Args:
            client: Meilisearch async client.
            index_name: Primary index receiving upserts.
            batch_size: Maximum documents per add request.
            task_timeout_ms: How long to wait for an engine task to settle.
        """
        self._client = client
        self._index_name = index_name
        self._batch_size = batch_size
        self._task_timeout_ms = task_timeout_ms

    @classmethod
    def connect(
        cls,
        url: str,
        api_key: str,
        index_name: str,
        *,
        batch_size: int = 1000,
        task_timeout_ms: int = 10_000,
    ) -> "SearchIndexClient":
        """Create a wrapper with its own Meilisearch client.

        No request is made until the first operation.
        """
        client = AsyncClient(url, api_key, timeout=max(1, task_timeout_ms // 1000))
        return cls(
            client,
            index_name,
            batch_size=batch_size,
            task_timeout_ms=task_timeout_ms,
        )

    @property
    def index_name(self) -> str:
        return self._index_name

    def _index(self, uid: str | None = None) -> AsyncIndex:
        return self._client.index(uid or self._index_name)

    async def _wait(self, task_uid: int, action: str) -> None:
        """Wait for an engine task and fail on a failed status.

        Args:
            task_uid: Engine task id.
            action: Short label used in the error message.

        Raises:
            SearchEngineError: If the task failed.
        """
        result = await self._client.wait_for_task(task_uid, timeout_in_ms=self._task_timeout_ms)
        if result.status == "failed":
            raise SearchEngineError(f"{action} task {task_uid} failed: {result.error}")

    async def ensure_index(self) -> None:
        """Create the primary index if missing and apply its settings.

        Raises:
            SearchEngineError: If the engine rejects any step.
        """
        try:
            if self._index_name not in await self.list_indexes():
                index = await self._client.create_index(self._index_name, primary_key=PRIMARY_KEY)
                logger.info("search_index_created", index=self._index_name)
            else:
                index = self._index()

            task = await index.update_searchable_attributes(SEARCHABLE_ATTRIBUTES)
            await self._wait(task.task_uid, "update searchable attributes")
            task = await index.update_filterable_attributes(FILTERABLE_ATTRIBUTES)
            await self._wait(task.task_uid, "update filterable attributes")
            task = await index.update_sortable_attributes(SORTABLE_ATTRIBUTES)
            await self._wait(task.task_uid, "update sortable attributes")
        except _ENGINE_ERRORS as e:
            raise SearchEngineError(f"failed to prepare index {self._index_name}: {e}") from e

    async def upsert_documents(self, documents: Sequence[SearchDocument]) -> int:
        """Add or fully replace documents in the primary index.

        Args:
            documents: Documents to write; same-id documents are replaced.

        Returns:
            Number of documents written.

        Raises:
            SearchEngineError: If any batch fails.
        """
        if not documents:
            return 0

        index = self._index()
        try:
            for start in range(0, len(documents), self._batch_size):
                batch = documents[start : start + self._batch_size]
                payload = [document.to_index_payload() for document in batch]
                task = await index.add_documents(payload, primary_key=PRIMARY_KEY)
                await self._wait(task.task_uid, "add documents")
        except _ENGINE_ERRORS as e:
            raise SearchEngineError(f"failed to upsert documents: {e}") from e

        logger.debug("search_documents_upserted", count=len(documents), index=self._index_name)
        return len(documents)

    async def delete_document(self, document_id: str) -> None:
        """Delete a document by id from every index.

        Deleting an id that is not indexed succeeds.

        Args:
            document_id: Index key of the document.

        Raises:
            SearchEngineError: If the engine cannot be reached or a delete fails.
        """
        try:
            for uid in await self.list_indexes():
                task = await self._index(uid).delete_document(document_id)
                await self._wait(task.task_uid, "delete document")
        except _ENGINE_ERRORS as e:
            raise SearchEngineError(f"failed to delete document {document_id}: {e}") from e

        logger.info("search_document_deleted", document_id=document_id)

    async def delete_documents(self, document_ids: Sequence[str]) -> int:
        """Delete many documents from the primary index.

        Args:
            document_ids: Index keys to remove.

        Returns:
            Number of ids submitted for deletion.

        Raises:
            SearchEngineError: If the delete fails.
        """
        if not document_ids:
            return 0

        index = self._index()
        try:
            for start in range(0, len(document_ids), self._batch_size):
                batch = list(document_ids[start : start + self._batch_size])
                task = await index.delete_documents(batch)
                await self._wait(task.task_uid, "delete documents")
        except _ENGINE_ERRORS as e:
            raise SearchEngineError(f"failed to delete {len(document_ids)} documents: {e}") from e
        return len(document_ids)

    async def list_indexes(self) -> list[str]:
        """List the uids of every index in the deployment.

        Raises:
            SearchEngineError: If the engine cannot be reached.
        """
        try:
            indexes = await self._client.get_indexes()
        except _ENGINE_ERRORS as e:
            raise SearchEngineError(f"failed to list indexes: {e}") from e
        return [index.uid for index in indexes or []]

    async def document_ids(self, prefix: str = "") -> set[str]:
        """Collect the ids held by the primary index.

        Args:
            prefix: Only ids starting with this prefix are returned.

        Returns:
            Matching document ids.

        Raises:
            SearchEngineError: If a page cannot be fetched.
        """
        index = self._index()
        ids: set[str] = set()
        offset = 0
        try:
            while True:
                page = await index.get_documents(
                    offset=offset, limit=_ID_PAGE_SIZE, fields=[PRIMARY_KEY]
                )
                ids.update(_ids_with_prefix(page.results, prefix))
                offset += len(page.results)
                if not page.results or offset >= page.total:
                    break
        except _ENGINE_ERRORS as e:
            raise SearchEngineError(f"failed to list documents of {self._index_name}: {e}") from e
        return ids

    async def is_healthy(self) -> bool:
        """Report whether the engine answers its health endpoint."""
        try:
            health = await self._client.health()
        except _ENGINE_ERRORS:
            return False
        return health.status == "available"

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()
        logger.info("search_client_closed")


def _ids_with_prefix(results: list[dict[str, Any]], prefix: str) -> set[str]:
    return {
        str(doc[PRIMARY_KEY])
        for doc in results
        if PRIMARY_KEY in doc and str(doc[PRIMARY_KEY]).startswith(prefix)
    }

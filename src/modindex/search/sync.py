"""Keeps the index in step with mod lifecycle events."""

from enum import Enum

import structlog

from modindex.catalog.status import ModStatus
from modindex.catalog.store import CatalogStore
from modindex.errors import (
    MappingError,
    ModNotFoundError,
    ModNotSearchableError,
    SearchEngineError,
    StoreError,
)
from modindex.search.client import SearchIndexClient
from modindex.search.mapper import DocumentMapper
from modindex.search.queue import CreationQueue

logger = structlog.get_logger()


class ModEvent(str, Enum):
    """Lifecycle events request handlers report for a mod.

    RECONCILE carries no claim about what happened; the mod's current
    status decides whether it is queued or removed.
    """

    SEARCHABLE = "mod.searchable"
    EDITED = "mod.edited"
    UNSEARCHABLE = "mod.unsearchable"
    DELETED = "mod.deleted"
    RECONCILE = "mod.reconcile"


class SearchSync:
    """Translates mod lifecycle events into index operations.

    Upserts go through the creation queue and land on the next flush.
    Removals hit the engine directly so a hidden mod stops showing up
    within the same request. Failures are logged and reported through the
    return value; the next full reindex repairs anything missed.
    """

    def __init__(
        self,
        store: CatalogStore,
        mapper: DocumentMapper,
        queue: CreationQueue,
        client: SearchIndexClient,
    ) -> None:
        self._store = store
        self._mapper = mapper
        self._queue = queue
        self._client = client

    async def _enqueue(self, mod_id: int) -> bool:
        try:
            document = await self._mapper.query_one(mod_id)
        except ModNotFoundError:
            logger.warning("search_sync_mod_missing", mod_id=mod_id)
            return False
        except ModNotSearchableError as e:
            logger.info("search_sync_not_searchable", mod_id=mod_id, status=e.status)
            return False
        except MappingError as e:
            logger.warning("search_sync_mapping_failed", mod_id=mod_id, error=str(e))
            return False
        except StoreError as e:
            logger.error("search_sync_store_failed", mod_id=mod_id, error=str(e))
            return False

        self._queue.add(document)
        logger.info("search_document_queued", mod_id=mod_id, document_id=document.id)
        return True

    async def notify_became_searchable(self, mod_id: int) -> bool:
        """Queue a fresh document for a mod that became searchable.

        The mod's current status decides: an event that arrives after the
        mod was hidden again queues nothing.

        Args:
            mod_id: Database id.

        Returns:
            True if a document was queued.
        """
        return await self._enqueue(mod_id)

    async def notify_edited(self, mod_id: int) -> bool:
        """Refresh a mod after an edit that did not change its status.

        Only searchable mods are queued; edits to hidden mods need no
        index work.

        Args:
            mod_id: Database id.

        Returns:
            True if a refreshed document was queued.
        """
        return await self._enqueue(mod_id)

    async def notify_left_searchable(self, mod_id: int) -> bool:
        """Remove a mod that is no longer searchable.

        Args:
            mod_id: Database id.

        Returns:
            True if the engine confirmed the delete.
        """
        return await self._remove(mod_id, reason="unsearchable")

    async def notify_deleted(self, mod_id: int) -> bool:
        """Remove a mod that was deleted from the catalog.

        Args:
            mod_id: Database id.

        Returns:
            True if the engine confirmed the delete.
        """
        return await self._remove(mod_id, reason="deleted")

    async def _remove(self, mod_id: int, reason: str) -> bool:
        document_id = self._mapper.document_id(mod_id)
        # A queued upsert would otherwise bring the mod back on the next flush
        discarded = self._queue.discard(document_id)
        try:
            await self._client.delete_document(document_id)
        except SearchEngineError as e:
            logger.warning(
                "search_sync_delete_failed",
                mod_id=mod_id,
                document_id=document_id,
                reason=reason,
                error=str(e),
            )
            return False

        logger.info(
            "search_document_removed",
            mod_id=mod_id,
            document_id=document_id,
            reason=reason,
            discarded_pending=discarded,
        )
        return True

    async def notify_status_changed(
        self, mod_id: int, old_status: ModStatus, new_status: ModStatus
    ) -> bool:
        """Apply a status transition.

        Args:
            mod_id: Database id.
            old_status: Status before the edit.
            new_status: Status after the edit.

        Returns:
            True if an index operation was applied or queued, False if none
            was needed or it failed.
        """
        if new_status.is_searchable():
            return await self.notify_became_searchable(mod_id)
        if old_status.is_searchable():
            return await self.notify_left_searchable(mod_id)
        return False

    async def reconcile(self, mod_id: int) -> bool:
        """Bring one mod's index state in line with its current status.

        Args:
            mod_id: Database id.

        Returns:
            True if the resulting index operation succeeded.
        """
        try:
            mod = await self._store.fetch_mod(mod_id)
        except StoreError as e:
            logger.error("search_sync_store_failed", mod_id=mod_id, error=str(e))
            return False

        if mod is None:
            return await self.notify_deleted(mod_id)
        if mod.status.is_searchable():
            return await self.notify_became_searchable(mod_id)
        return await self.notify_left_searchable(mod_id)

    async def handle(self, event: ModEvent, mod_id: int) -> bool:
        """Dispatch a lifecycle event.

        Args:
            event: What happened to the mod.
            mod_id: Database id.

        Returns:
            Result of the matching notify call.
        """
        if event is ModEvent.SEARCHABLE:
            return await self.notify_became_searchable(mod_id)
        if event is ModEvent.EDITED:
            return await self.notify_edited(mod_id)
        if event is ModEvent.DELETED:
            return await self.notify_deleted(mod_id)
        if event is ModEvent.RECONCILE:
            return await self.reconcile(mod_id)
        return await self.notify_left_searchable(mod_id)

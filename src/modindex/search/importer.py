"""Bulk snapshot of every searchable mod for a full reindex."""

from collections.abc import AsyncIterator
from dataclasses import dataclass

import structlog

from modindex.catalog.store import CatalogStore
from modindex.errors import MappingError
from modindex.search.mapper import DocumentMapper
from modindex.search.schemas import SearchDocument

logger = structlog.get_logger()


@dataclass
class ImportStats:
    """Counters for one import run."""

    scanned: int = 0
    hidden: int = 0
    skipped: int = 0
    indexed: int = 0


class BulkImporter:
    """Streams the catalog through the document mapper.

    Rows arrive through a server-side cursor and each searchable row is
    enriched with its own queries, so memory holds documents rather than
    the whole table.
    """

    def __init__(self, store: CatalogStore, mapper: DocumentMapper) -> None:
        self._store = store
        self._mapper = mapper
        self.last_stats = ImportStats()

    async def iter_documents(self, stats: ImportStats | None = None) -> AsyncIterator[SearchDocument]:
        """Yield a document for every searchable mod.

        Mods that cannot be mapped are logged and skipped.

        Args:
            stats: Counters to update while streaming.

        Yields:
            Search documents in mod id order.

        Raises:
            StoreError: If the scan or an enrichment query fails.
        """
        stats = stats if stats is not None else ImportStats()
        async for mod in self._store.stream_mods():
            stats.scanned += 1
            if not mod.status.is_searchable():
                stats.hidden += 1
                continue
            try:
                document = await self._mapper.build(mod)
            except MappingError as e:
                stats.skipped += 1
                logger.warning("bulk_import_skip", mod_id=mod.id, error=str(e))
                continue
            stats.indexed += 1
            yield document

    async def import_all(self) -> list[SearchDocument]:
        """Build the complete document set for the searchable catalog.

        Returns:
            Every searchable mod that could be mapped.

        Raises:
            StoreError: If the store becomes unreachable during the run.
        """
        logger.info("bulk_import_started")
        stats = ImportStats()
        documents = [document async for document in self.iter_documents(stats)]
        self.last_stats = stats
        logger.info(
            "bulk_import_complete",
            scanned=stats.scanned,
            hidden=stats.hidden,
            skipped=stats.skipped,
            indexed=stats.indexed,
        )
        return documents

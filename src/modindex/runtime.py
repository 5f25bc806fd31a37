"""Composition root wiring the store, search engine and index jobs."""

from dataclasses import dataclass

import structlog

from modindex.catalog.store import CatalogStore
from modindex.config import Settings
from modindex.errors import SearchEngineError
from modindex.search.client import SearchIndexClient
from modindex.search.importer import BulkImporter
from modindex.search.jobs import IndexJobs
from modindex.search.mapper import DocumentMapper
from modindex.search.queue import CreationQueue
from modindex.search.scheduler import Scheduler
from modindex.search.sync import SearchSync

logger = structlog.get_logger()

FLUSH_JOB = "flush"
REINDEX_JOB = "full_reindex"


@dataclass
class SearchRuntime:
    """Every long-lived component of the indexing subsystem.

    Created once per process and owned by the application lifespan.
    """

    settings: Settings
    store: CatalogStore
    client: SearchIndexClient
    queue: CreationQueue
    mapper: DocumentMapper
    importer: BulkImporter
    jobs: IndexJobs
    scheduler: Scheduler
    sync: SearchSync

    async def start(self) -> None:
        """Prepare the index and start the background jobs.

        An unreachable search engine is logged, not fatal: the scheduled
        jobs keep retrying and the first successful reindex fills the index.
        """
        try:
            await self.client.ensure_index()
        except SearchEngineError as e:
            logger.warning("search_index_prepare_failed", error=str(e))

        if not self.settings.enable_scheduler:
            logger.info("scheduler_disabled")
            return

        self.scheduler.schedule(FLUSH_JOB, self.settings.flush_interval, self.jobs.flush)
        self.scheduler.schedule(
            REINDEX_JOB, self.settings.reindex_interval, self.jobs.full_reindex
        )
        self.scheduler.start()

    async def aclose(self) -> None:
        """Stop the jobs, write what is still queued and release connections.

        The final flush is skipped when runs are still in flight after the
        shutdown timeout; the next full reindex covers what it would have
        written.
        """
        drained = await self.scheduler.stop(timeout=self.settings.shutdown_timeout)
        if not drained:
            logger.warning("final_flush_skipped", pending_documents=len(self.queue))
        elif len(self.queue):
            await self.jobs.flush()

        try:
            await self.client.close()
        finally:
            await self.store.dispose()


def build_runtime(
    settings: Settings,
    *,
    store: CatalogStore | None = None,
    client: SearchIndexClient | None = None,
) -> SearchRuntime:
    """Assemble the indexing subsystem from configuration.

    Args:
        settings: Validated configuration.
        store: Catalog store to use instead of one built from database_url.
        client: Search engine wrapper to use instead of one built from the
            meilisearch settings.

    Returns:
        A runtime whose scheduler has not been started.
    """
    if store is None:
        store = CatalogStore.from_url(settings.database_url)
    if client is None:
        client = SearchIndexClient.connect(
            settings.meilisearch_url,
            settings.meilisearch_key,
            settings.index_name,
            batch_size=settings.index_batch_size,
            task_timeout_ms=settings.task_timeout_ms,
        )

    queue = CreationQueue()
    mapper = DocumentMapper(store, site_url=settings.site_url, host_tag=settings.host_tag)
    importer = BulkImporter(store, mapper)
    jobs = IndexJobs(
        queue,
        client,
        importer,
        host_tag=settings.host_tag,
        requeue_failed=settings.requeue_failed_flush,
    )

    return SearchRuntime(
        settings=settings,
        store=store,
        client=client,
        queue=queue,
        mapper=mapper,
        importer=importer,
        jobs=jobs,
        scheduler=Scheduler(max_concurrent_runs=2),
        sync=SearchSync(store, mapper, queue, client),
    )

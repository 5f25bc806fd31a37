"""The two recurring index jobs: queue flush and full reindex."""

import time
from datetime import UTC, datetime

import structlog

from modindex.errors import SearchEngineError, StoreError
from modindex.search.client import SearchIndexClient
from modindex.search.importer import BulkImporter
from modindex.search.queue import CreationQueue
from modindex.search.schemas import FlushResult, JobOutcome, ReindexResult

logger = structlog.get_logger()


class IndexJobs:
    """Flush and reindex operations driven by the scheduler.

    Attributes:
        last_flush: Result of the most recent flush that had work to do.
        last_reindex: Result of the most recent full reindex.
    """

    def __init__(
        self,
        queue: CreationQueue,
        client: SearchIndexClient,
        importer: BulkImporter,
        *,
        host_tag: str,
        requeue_failed: bool = True,
    ) -> None:
        """Initialize jobs.

        Args:
            queue: Creation queue drained by flush.
            client: Search engine wrapper.
            importer: Source of full snapshots.
            host_tag: Tag whose documents a reindex owns in a shared index.
            requeue_failed: Put a failed flush batch back on the queue
                instead of leaving it to the next full reindex.
        """
        self._queue = queue
        self._client = client
        self._importer = importer
        self._id_prefix = f"{host_tag}-"
        self._requeue_failed = requeue_failed
        self.last_flush: FlushResult | None = None
        self.last_reindex: ReindexResult | None = None

    async def flush(self) -> FlushResult:
        """Write every pending document to the index.

        Returns:
            SKIPPED for an empty queue, otherwise the write outcome.
        """
        batch = self._queue.drain()
        if not batch:
            return FlushResult(outcome=JobOutcome.SKIPPED, finished_at=datetime.now(UTC))

        try:
            await self._client.upsert_documents(batch)
        except SearchEngineError as e:
            requeued = self._queue.requeue(batch) if self._requeue_failed else 0
            logger.error(
                "search_flush_failed",
                documents=len(batch),
                document_ids=[document.id for document in batch],
                requeued=requeued,
                error=str(e),
            )
            result = FlushResult(
                outcome=JobOutcome.FAILED,
                documents=len(batch),
                requeued=requeued,
                error=str(e),
                finished_at=datetime.now(UTC),
            )
        else:
            logger.info("search_flush_complete", documents=len(batch))
            result = FlushResult(
                outcome=JobOutcome.SUCCEEDED,
                documents=len(batch),
                finished_at=datetime.now(UTC),
            )
        finally:
            self._queue.settle(batch)

        self.last_flush = result
        return result

    async def full_reindex(self) -> ReindexResult:
        """Rebuild this host's documents from the primary store.

        Writes the fresh snapshot, then deletes every document of this host
        that the snapshot no longer contains. Documents of other hosts in a
        shared index are left alone. A store failure aborts before the
        index is touched.

        Returns:
            SUCCEEDED with counts, or FAILED with the error.
        """
        started = time.perf_counter()
        logger.info("full_reindex_started")

        try:
            documents = await self._importer.import_all()
            written = await self._client.upsert_documents(documents)
            fresh_ids = {document.id for document in documents}
            stale_ids = await self._client.document_ids(prefix=self._id_prefix) - fresh_ids
            removed = await self._client.delete_documents(sorted(stale_ids))
        except (StoreError, SearchEngineError) as e:
            logger.error("full_reindex_failed", error=str(e), error_type=type(e).__name__)
            result = ReindexResult(
                outcome=JobOutcome.FAILED,
                duration_ms=_elapsed_ms(started),
                error=str(e),
                finished_at=datetime.now(UTC),
            )
        else:
            result = ReindexResult(
                outcome=JobOutcome.SUCCEEDED,
                documents=written,
                removed=removed,
                duration_ms=_elapsed_ms(started),
                finished_at=datetime.now(UTC),
            )
            logger.info(
                "full_reindex_complete",
                documents=written,
                removed=removed,
                duration_ms=result.duration_ms,
            )

        self.last_reindex = result
        return result


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)

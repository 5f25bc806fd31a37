"""Search index synchronization: queue, importer, scheduler and sync protocol."""

from modindex.search.client import SearchIndexClient
from modindex.search.importer import BulkImporter
from modindex.search.jobs import IndexJobs
from modindex.search.mapper import DocumentMapper, document_id, to_search_document
from modindex.search.queue import CreationQueue
from modindex.search.scheduler import Scheduler
from modindex.search.schemas import FlushResult, JobOutcome, ReindexResult, SearchDocument
from modindex.search.sync import ModEvent, SearchSync

__all__ = [
    "BulkImporter",
    "CreationQueue",
    "DocumentMapper",
    "FlushResult",
    "IndexJobs",
    "JobOutcome",
    "ModEvent",
    "ReindexResult",
    "Scheduler",
    "SearchDocument",
    "SearchIndexClient",
    "SearchSync",
    "document_id",
    "to_search_document",
]

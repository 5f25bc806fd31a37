"""Deduplicating buffer of pending index upserts."""

import threading
from collections.abc import Iterable

from modindex.search.schemas import SearchDocument


class CreationQueue:
    """Pending upserts keyed by document id, last write wins.

    Producers are request handlers; the consumer is the scheduled flush.
    The lock only ever guards dict operations, so producers never wait on
    search engine latency.

    Drained documents stay tracked as in flight until the flush settles
    or requeues them. Discarding an id revokes its in-flight entry, so a
    failed flush cannot put back a mod that was removed meanwhile.
    """

    def __init__(self) -> None:
        self._pending: dict[str, SearchDocument] = {}
        self._in_flight: dict[str, SearchDocument] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def add(self, document: SearchDocument) -> None:
        """Queue a document, replacing any pending entry with the same id.

        Args:
            document: Fully built search document.
        """
        with self._lock:
            self._pending[document.id] = document

    def drain(self) -> list[SearchDocument]:
        """Remove and return every pending document.

        Returns:
            The batch, in first-enqueued order; empty if nothing is pending.
        """
        with self._lock:
            batch, self._pending = self._pending, {}
            self._in_flight.update(batch)
        return list(batch.values())

    def settle(self, documents: Iterable[SearchDocument]) -> None:
        """Stop tracking a drained batch that needs no retry.

        Args:
            documents: The batch returned by drain().
        """
        with self._lock:
            for document in documents:
                if self._in_flight.get(document.id) is document:
                    del self._in_flight[document.id]

    def requeue(self, documents: Iterable[SearchDocument]) -> int:
        """Put back documents from a failed flush.

        Documents discarded or drained again since this batch left the
        queue are not restored, and entries added since the drain are
        newer and are kept as they are.

        Args:
            documents: The batch that could not be written.

        Returns:
            Number of documents put back.
        """
        restored = 0
        with self._lock:
            for document in documents:
                if self._in_flight.get(document.id) is not document:
                    continue
                del self._in_flight[document.id]
                if document.id not in self._pending:
                    self._pending[document.id] = document
                    restored += 1
        return restored

    def discard(self, document_id: str) -> bool:
        """Drop the pending entry for a document id and revoke any retry.

        Args:
            document_id: Index key of the document.

        Returns:
            True if an entry was pending.
        """
        with self._lock:
            self._in_flight.pop(document_id, None)
            return self._pending.pop(document_id, None) is not None

    def pending_ids(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def in_flight_ids(self) -> list[str]:
        with self._lock:
            return list(self._in_flight)

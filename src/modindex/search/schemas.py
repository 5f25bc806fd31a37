"""Pydantic models for index documents and indexing job results."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class SearchDocument(BaseModel):
    """Denormalised, engine-facing representation of one mod.

    Attributes:
        id: Stable document key, ``<host-tag>-<base62 mod id>``.
        title: Searchable title.
        description: Searchable description.
        categories: Category tags, order irrelevant.
        downloads: Download counter at snapshot time.
        follows: Follower counter at snapshot time.
        page_url: Public page of the mod.
        icon_url: Icon location, empty when the mod has none.
        author: Username of the owning account.
        author_url: Public page of the owning account.
        date_created: Publication time.
        created_timestamp: Publication time in epoch seconds.
        date_modified: Last modification time.
        modified_timestamp: Last modification time in epoch seconds.
        is_nsfw: Adult content flag, used for result filtering.
        host: Tag of the system the document originates from.
        slug: Optional human-readable alias.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    description: str
    categories: frozenset[str] = frozenset()
    downloads: int = Field(ge=0)
    follows: int = Field(ge=0)
    page_url: str
    icon_url: str = ""
    author: str
    author_url: str
    date_created: datetime
    created_timestamp: int
    date_modified: datetime
    modified_timestamp: int
    is_nsfw: bool = False
    host: str
    slug: str | None = None

    @field_serializer("categories")
    def _sorted_categories(self, value: frozenset[str]) -> list[str]:
        return sorted(value)

    def to_index_payload(self) -> dict[str, Any]:
        """Render the JSON-ready dict sent to the search engine."""
        return self.model_dump(mode="json")


class JobOutcome(str, Enum):
    """How an indexing job run ended."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class FlushResult(BaseModel):
    """Outcome of one flush of the creation queue.

    Attributes:
        outcome: SKIPPED when the queue was empty.
        documents: Number of documents drained.
        requeued: Number of documents put back after a failure.
        error: Failure description, if any.
        finished_at: Completion time (UTC).
    """

    outcome: JobOutcome
    documents: int = 0
    requeued: int = 0
    error: str | None = None
    finished_at: datetime


class ReindexResult(BaseModel):
    """Outcome of one full reindex.

    Attributes:
        outcome: SUCCEEDED or FAILED.
        documents: Documents written from the fresh snapshot.
        removed: Stale documents deleted from the index.
        duration_ms: Wall time of the run.
        error: Failure description, if any.
        finished_at: Completion time (UTC).
    """

    outcome: JobOutcome
    documents: int = 0
    removed: int = 0
    duration_ms: float = 0.0
    error: str | None = None
    finished_at: datetime

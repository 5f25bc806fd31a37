"""Service configuration loaded from environment variables."""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration loaded from environment variables.

    Missing search engine or site settings fail validation at startup
    rather than on the first scheduled run.

    Attributes:
        host: Bind address for the API server.
        port: Port number for the API server.
        debug: Enable debug logging and API documentation.
        shutdown_timeout: Seconds to wait for in-flight index runs on shutdown.
        key: API key guarding the admin endpoints; open when empty.
        database_url: SQLAlchemy async URL of the catalog database.
        meilisearch_url: Search engine endpoint.
        meilisearch_key: Search engine credential.
        index_name: Index receiving mod documents.
        site_url: Public site base URL used in document links.
        host_tag: Prefix marking this system's documents in a shared index.
        flush_interval: Seconds between creation queue flushes.
        reindex_interval: Seconds between full reindexes.
        index_batch_size: Documents per search engine request.
        task_timeout_ms: Milliseconds to wait for a search engine task.
        requeue_failed_flush: Put failed flush batches back on the queue.
        enable_scheduler: Run the background index jobs.
    """

    model_config = SettingsConfigDict(
        env_prefix="MODINDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    shutdown_timeout: float = 30.0
    key: str = ""

    database_url: str = Field(min_length=1)
    meilisearch_url: str = Field(min_length=1)
    meilisearch_key: str = Field(min_length=1)
    index_name: str = "mods"
    site_url: str = Field(min_length=1)
    host_tag: str = Field(default="local", min_length=1, pattern=r"^[A-Za-z0-9_]+$")

    flush_interval: float = Field(default=10.0, gt=0)
    reindex_interval: float = Field(default=3600.0, gt=0)
    index_batch_size: int = Field(default=1000, ge=1)
    task_timeout_ms: int = Field(default=10_000, ge=1)
    requeue_failed_flush: bool = True
    enable_scheduler: bool = True

    @field_validator("database_url", "meilisearch_url", "meilisearch_key", "site_url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        """Reject values that are only whitespace."""
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("site_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

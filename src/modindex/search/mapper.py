"""Turn catalog rows into search documents."""

from collections.abc import Iterable
from datetime import UTC, datetime

from pydantic import ValidationError

from modindex.catalog.ids import to_base62
from modindex.catalog.store import CatalogStore, ModRecord, Owner
from modindex.errors import MappingError, ModNotFoundError, ModNotSearchableError
from modindex.search.schemas import SearchDocument


def document_id(host_tag: str, mod_id: int) -> str:
    """Build the index key of a mod.

    Args:
        host_tag: Tag distinguishing this system in a shared index.
        mod_id: Database id of the mod.

    Returns:
        Document id of the form ``<host-tag>-<base62 id>``.
    """
    return f"{host_tag}-{to_base62(mod_id)}"


def _as_utc(value: datetime) -> datetime:
    # Drivers without timezone support hand back naive UTC values.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def to_search_document(
    mod: ModRecord,
    owner: Owner,
    categories: Iterable[str],
    *,
    site_url: str,
    host_tag: str,
) -> SearchDocument:
    """Map one mod and its joined data to a search document.

    Pure and deterministic in its inputs.

    Args:
        mod: Mod row.
        owner: Account owning the mod's team.
        categories: Category tags of the mod.
        site_url: Public site base URL, without trailing slash.
        host_tag: Tag distinguishing this system in a shared index.

    Returns:
        The document to upsert.

    Raises:
        MappingError: If the row holds values the document cannot carry.
    """
    public_id = to_base62(mod.id)
    created = _as_utc(mod.published)
    modified = _as_utc(mod.updated)

    try:
        return SearchDocument(
            id=document_id(host_tag, mod.id),
            title=mod.title,
            description=mod.description,
            categories=frozenset(categories),
            downloads=mod.downloads,
            follows=mod.follows,
            page_url=f"{site_url}/mod/{public_id}",
            icon_url=mod.icon_url or "",
            author=owner.username,
            author_url=f"{site_url}/user/{to_base62(owner.id)}",
            date_created=created,
            created_timestamp=int(created.timestamp()),
            date_modified=modified,
            modified_timestamp=int(modified.timestamp()),
            is_nsfw=mod.is_nsfw,
            host=host_tag,
            slug=mod.slug,
        )
    except ValidationError as e:
        raise MappingError(f"mod {mod.id} has invalid search fields: {e}", mod.id) from e


class DocumentMapper:
    """Document mapper bound to a store and the site's public settings."""

    def __init__(self, store: CatalogStore, *, site_url: str, host_tag: str) -> None:
        """Initialize mapper.

        Args:
            store: Catalog store used for enrichment queries.
            site_url: Public site base URL.
            host_tag: Tag distinguishing this system in a shared index.
        """
        self._store = store
        self._site_url = site_url.rstrip("/")
        self._host_tag = host_tag

    @property
    def host_tag(self) -> str:
        return self._host_tag

    def document_id(self, mod_id: int) -> str:
        return document_id(self._host_tag, mod_id)

    def map(self, mod: ModRecord, owner: Owner, categories: Iterable[str]) -> SearchDocument:
        return to_search_document(
            mod, owner, categories, site_url=self._site_url, host_tag=self._host_tag
        )

    async def build(self, mod: ModRecord) -> SearchDocument:
        """Resolve owner and categories for a mod row, then map it.

        Args:
            mod: Mod row from a point lookup or a full scan.

        Returns:
            The mapped document.

        Raises:
            MappingError: If the mod's team has no owner or a field is invalid.
            StoreError: If an enrichment query fails.
        """
        owner = await self._store.fetch_owner(mod.team_id)
        if owner is None:
            raise MappingError(f"no owner found for team {mod.team_id}", mod.id)
        mod_categories = await self._store.fetch_categories(mod.id)
        return self.map(mod, owner, mod_categories)

    async def query_one(self, mod_id: int) -> SearchDocument:
        """Build the document for one searchable mod straight from the store.

        The status is read in the same lookup as the fields, so a mod that
        was hidden after an event was sent is never mapped.

        Args:
            mod_id: Database id.

        Returns:
            The mapped document.

        Raises:
            ModNotFoundError: If the mod does not exist.
            ModNotSearchableError: If the mod's status keeps it out of search.
            MappingError: If the mod cannot be mapped.
            StoreError: If a query fails.
        """
        mod = await self._store.fetch_mod(mod_id)
        if mod is None:
            raise ModNotFoundError(mod_id)
        if not mod.status.is_searchable():
            raise ModNotSearchableError(mod_id, mod.status.value)
        return await self.build(mod)

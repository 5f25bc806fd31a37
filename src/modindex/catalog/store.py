"""Read-only access to mods, owners and categories in the primary store."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import Select, select, text
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from modindex.catalog.status import ModStatus
from modindex.catalog.tables import (
    OWNER_ROLE,
    categories,
    mods,
    mods_categories,
    statuses,
    team_members,
    users,
)
from modindex.errors import StoreError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ModRecord:
    """Display and search fields of one mod row.

    Attributes:
        id: Database id.
        team_id: Owning team.
        title: Display title.
        description: Short description.
        downloads: Download counter.
        follows: Follower counter.
        icon_url: Icon location, if any.
        slug: Human-readable alias, if any.
        is_nsfw: Whether the mod is flagged as adult content.
        published: Creation timestamp.
        updated: Last modification timestamp.
        status: Parsed review status.
    """

    id: int
    team_id: int
    title: str
    description: str
    downloads: int
    follows: int
    icon_url: str | None
    slug: str | None
    is_nsfw: bool
    published: datetime
    updated: datetime
    status: ModStatus


@dataclass(frozen=True)
class Owner:
    """Account holding the owner role on a mod's team."""

    id: int
    username: str


def _mod_query() -> Select[Any]:
    """Select mod columns with the status name resolved.

    The status join is an outer join so a dangling status id reads as
    UNKNOWN instead of dropping the row.
    """
    return select(
        mods.c.id,
        mods.c.team_id,
        mods.c.title,
        mods.c.description,
        mods.c.downloads,
        mods.c.follows,
        mods.c.icon_url,
        mods.c.slug,
        mods.c.is_nsfw,
        mods.c.published,
        mods.c.updated,
        statuses.c.status.label("status_name"),
    ).select_from(mods.outerjoin(statuses, mods.c.status == statuses.c.id))


def _record_from_row(row: Row[Any]) -> ModRecord:
    return ModRecord(
        id=row.id,
        team_id=row.team_id,
        title=row.title,
        description=row.description,
        downloads=row.downloads,
        follows=row.follows,
        icon_url=row.icon_url,
        slug=row.slug,
        is_nsfw=bool(row.is_nsfw),
        published=row.published,
        updated=row.updated,
        status=ModStatus.from_str(row.status_name),
    )


class CatalogStore:
    """Query surface over the catalog database.

    Every method opens its own pooled connection, so a caller may run
    point queries while a full scan is still streaming. All SQLAlchemy
    failures surface as StoreError.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        """Initialize store.

        Args:
            engine: Async SQLAlchemy engine bound to the catalog database.
        """
        self._engine = engine

    @classmethod
    def from_url(cls, url: str) -> "CatalogStore":
        """Create a store with its own engine.

        Args:
            url: SQLAlchemy async database URL.

        Returns:
            Store owning a freshly created engine.
        """
        return cls(create_async_engine(url, pool_pre_ping=True))

    @property
    def engine(self) -> AsyncEngine:
        """Underlying async engine."""
        return self._engine

    async def fetch_mod(self, mod_id: int) -> ModRecord | None:
        """Load one mod by id.

        Args:
            mod_id: Database id.

        Returns:
            The mod record, or None if no such mod exists.

        Raises:
            StoreError: If the query fails.
        """
        stmt = _mod_query().where(mods.c.id == mod_id)
        try:
            async with self._engine.connect() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as e:
            raise StoreError(f"failed to load mod {mod_id}") from e
        return _record_from_row(row) if row is not None else None

    async def stream_mods(self) -> AsyncIterator[ModRecord]:
        """Yield every mod in id order through a server-side cursor.

        Yields:
            Mod records regardless of status.

        Raises:
            StoreError: If the scan fails at any point.
        """
        stmt = _mod_query().order_by(mods.c.id)
        try:
            async with self._engine.connect() as conn:
                result = await conn.stream(stmt)
                async for row in result:
                    yield _record_from_row(row)
        except SQLAlchemyError as e:
            raise StoreError("full scan of mods failed") from e

    async def fetch_owner(self, team_id: int) -> Owner | None:
        """Resolve the owner account of a team.

        Args:
            team_id: Team owning the mod.

        Returns:
            The owner, or None when the team has no member with the owner role.

        Raises:
            StoreError: If the query fails.
        """
        stmt = (
            select(users.c.id, users.c.username)
            .select_from(users.join(team_members, team_members.c.user_id == users.c.id))
            .where(team_members.c.team_id == team_id, team_members.c.role == OWNER_ROLE)
            .order_by(users.c.id)
            .limit(1)
        )
        try:
            async with self._engine.connect() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as e:
            raise StoreError(f"failed to resolve owner of team {team_id}") from e
        return Owner(id=row.id, username=row.username) if row is not None else None

    async def fetch_categories(self, mod_id: int) -> list[str]:
        """List the category tags of a mod.

        Args:
            mod_id: Database id.

        Returns:
            Category names, alphabetically.

        Raises:
            StoreError: If the query fails.
        """
        stmt = (
            select(categories.c.category)
            .select_from(
                mods_categories.join(
                    categories, mods_categories.c.joining_category_id == categories.c.id
                )
            )
            .where(mods_categories.c.joining_mod_id == mod_id)
            .order_by(categories.c.category)
        )
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                return list(result.scalars())
        except SQLAlchemyError as e:
            raise StoreError(f"failed to load categories of mod {mod_id}") from e

    async def ping(self) -> None:
        """Run a trivial query to prove the database is reachable.

        Raises:
            StoreError: If the database cannot be queried.
        """
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreError("database ping failed") from e

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self._engine.dispose()
        logger.info("catalog_store_disposed")

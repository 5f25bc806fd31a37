"""Primary store access: tables, statuses, ids and queries."""

from modindex.catalog.ids import InvalidIdError, parse_base62, to_base62
from modindex.catalog.status import ModStatus
from modindex.catalog.store import CatalogStore, ModRecord, Owner

__all__ = [
    "CatalogStore",
    "InvalidIdError",
    "ModRecord",
    "ModStatus",
    "Owner",
    "parse_base62",
    "to_base62",
]

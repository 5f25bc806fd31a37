"""Exception hierarchy for the indexing pipeline."""


class IndexingError(Exception):
    """Base class for failures while keeping the search index in sync."""


class StoreError(IndexingError):
    """Raised when the primary store cannot be reached or queried."""


class SearchEngineError(IndexingError):
    """Raised when the search engine rejects or fails a request."""


class MappingError(IndexingError):
    """Raised when a single mod cannot be turned into a search document.

    Attributes:
        mod_id: Database id of the offending mod.
    """

    def __init__(self, message: str, mod_id: int) -> None:
        """Initialize mapping error.

        Args:
            message: Error description.
            mod_id: Database id of the mod that failed to map.
        """
        super().__init__(message)
        self.mod_id = mod_id


class ModNotFoundError(MappingError):
    """Raised when a point lookup finds no mod with the given id."""

    def __init__(self, mod_id: int) -> None:
        super().__init__(f"mod {mod_id} does not exist", mod_id)


class ModNotSearchableError(MappingError):
    """Raised when a point lookup finds a mod whose status keeps it out of search.

    Attributes:
        status: The mod's current status value.
    """

    def __init__(self, mod_id: int, status: str) -> None:
        super().__init__(f"mod {mod_id} is {status}, not searchable", mod_id)
        self.status = status

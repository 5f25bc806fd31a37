"""Publication status of a mod and what it implies for search."""

from enum import Enum


class ModStatus(str, Enum):
    """Review status stored in the ``statuses`` table."""

    APPROVED = "approved"
    REJECTED = "rejected"
    DRAFT = "draft"
    UNLISTED = "unlisted"
    PROCESSING = "processing"
    UNKNOWN = "unknown"

    @classmethod
    def from_str(cls, value: str | None) -> "ModStatus":
        """Parse a status string, falling back to UNKNOWN.

        Args:
            value: Raw status string from the database.

        Returns:
            Matching status, or UNKNOWN for anything unrecognised.
        """
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN

    def is_searchable(self) -> bool:
        """Whether mods with this status belong in the search index."""
        return self is ModStatus.APPROVED

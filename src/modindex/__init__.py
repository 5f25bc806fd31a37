"""Search index synchronization service for the mod catalog."""

__version__ = "0.1.0"

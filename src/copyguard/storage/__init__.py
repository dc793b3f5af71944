"""Local persistence backends."""

from copyguard.storage.sqlite import SQLiteStore

__all__ = ["SQLiteStore"]

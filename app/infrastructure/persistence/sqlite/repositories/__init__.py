"""SQLite repository adapters.

This package contains repository adapters that implement the sync ports
using SQLite/Peewee as the persistence layer.
"""

from app.infrastructure.persistence.sqlite.repositories.notion_sync_repository import (
    SqliteNotionSyncRepositoryAdapter,
)

__all__ = ["SqliteNotionSyncRepositoryAdapter"]

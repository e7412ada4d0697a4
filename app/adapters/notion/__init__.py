"""Notion integration adapter for game library synchronization."""

from app.adapters.notion.client import NotionClient
from app.adapters.notion.sync_service import NotionSyncService

__all__ = ["NotionClient", "NotionSyncService"]

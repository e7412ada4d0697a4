"""Records flowing through the sync pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass
class PageMapping:
    """Local association between a game and its Notion page."""

    app_id: int
    notion_page_id: str | None = None
    synced_at: datetime | None = None

    def invalidate(self) -> None:
        """Clear the page reference so the next write creates a fresh page."""
        self.notion_page_id = None
        self.synced_at = None

    def adopt(self, page_id: str) -> None:
        """Point at a recovered page; the cleared timestamp forces a refresh write."""
        self.notion_page_id = page_id
        self.synced_at = None


@dataclass
class GameSyncRecord:
    """One game of a user's library joined with its details and mapping."""

    app_id: int
    name: str | None = None
    playtime_minutes: int | None = None
    last_played: datetime | None = None
    description: str | None = None
    header_image: str | None = None
    usage_updated_at: datetime | None = None
    details_updated_at: datetime | None = None
    mapping: PageMapping = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.mapping is None:
            self.mapping = PageMapping(app_id=self.app_id)

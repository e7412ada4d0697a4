"""Notion page properties and cover for a game."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.adapters.notion.sync.constants import (
    MAX_TEXT_LENGTH,
    PROP_APP_ID,
    PROP_LAST_PLAYED,
    PROP_NAME,
    PROP_PLAYTIME,
    PROP_STEAM_LINK,
    PROP_SYNCED_AT,
    STEAM_STORE_URL,
)
from app.core.time_utils import ensure_datetime, utc_now

if TYPE_CHECKING:
    from datetime import datetime

    from app.adapters.notion.sync.records import GameSyncRecord


def playtime_hours(minutes: int | None) -> float:
    """Minutes played as hours, rounded to one decimal."""
    if not minutes:
        return 0
    return round(minutes / 60, 1)


def _date(value: Any) -> dict[str, str] | None:
    parsed = ensure_datetime(value)
    return {"start": parsed.isoformat()} if parsed else None


def build_properties(
    record: GameSyncRecord, *, synced_at: datetime | None = None
) -> dict[str, Any]:
    title = record.name or f"App {record.app_id}"
    return {
        PROP_NAME: {"title": [{"text": {"content": title[:MAX_TEXT_LENGTH]}}]},
        PROP_APP_ID: {"number": record.app_id},
        PROP_PLAYTIME: {"number": playtime_hours(record.playtime_minutes)},
        PROP_LAST_PLAYED: {"date": _date(record.last_played)},
        PROP_STEAM_LINK: {"url": STEAM_STORE_URL.format(app_id=record.app_id)},
        PROP_SYNCED_AT: {"date": _date(synced_at or utc_now())},
    }


def build_cover(record: GameSyncRecord) -> dict[str, Any] | None:
    if not record.header_image:
        return None
    return {"type": "external", "external": {"url": record.header_image}}

"""Freshness check for mapped Notion pages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.time_utils import ensure_datetime

if TYPE_CHECKING:
    from app.adapters.notion.sync.records import GameSyncRecord, PageMapping


def is_up_to_date(record: GameSyncRecord, mapping: PageMapping | None = None) -> bool:
    """Return True when the page was synced after both source tables last changed.

    A missing source timestamp never blocks freshness; a missing page or sync
    timestamp always does.
    """
    mapping = mapping or record.mapping
    if not mapping.notion_page_id:
        return False
    synced_at = ensure_datetime(mapping.synced_at)
    if synced_at is None:
        return False

    for changed_at in (record.usage_updated_at, record.details_updated_at):
        changed = ensure_datetime(changed_at)
        if changed is not None and changed > synced_at:
            return False
    return True

"""SQLite implementation of the Notion sync repository."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import peewee

from app.adapters.notion.sync.records import GameSyncRecord, PageMapping
from app.core.time_utils import ensure_datetime, utc_now
from app.db.models import GameDetail, NotionMapping, UserGame
from app.infrastructure.persistence.sqlite.base import SqliteBaseRepository

if TYPE_CHECKING:
    from datetime import datetime


def _row_to_record(row: dict[str, Any]) -> GameSyncRecord:
    app_id = row["app_id"]
    return GameSyncRecord(
        app_id=app_id,
        name=row.get("name") or row.get("detail_name"),
        playtime_minutes=row.get("playtime_forever"),
        last_played=ensure_datetime(row.get("last_played")),
        description=row.get("description"),
        header_image=row.get("header_image"),
        usage_updated_at=ensure_datetime(row.get("usage_updated_at")),
        details_updated_at=ensure_datetime(row.get("details_updated_at")),
        mapping=PageMapping(
            app_id=app_id,
            notion_page_id=row.get("notion_page_id") or None,
            synced_at=ensure_datetime(row.get("synced_at")),
        ),
    )


class SqliteNotionSyncRepositoryAdapter(SqliteBaseRepository):
    """Reads sync candidates and owns the notion_mappings table."""

    async def async_get_sync_candidates(
        self, user_id: str, since: datetime | None = None
    ) -> list[GameSyncRecord]:
        """Get a user's games joined with details and mapping, newest change first.

        Args:
            user_id: Owner of the library
            since: Only games whose usage or detail data changed after this instant

        Returns:
            Candidate records in ``user_games.updated_at`` descending order
        """
        watermark = ensure_datetime(since)

        def _query() -> list[GameSyncRecord]:
            query = (
                UserGame.select(
                    UserGame.app_id,
                    UserGame.name,
                    UserGame.playtime_forever,
                    UserGame.last_played,
                    UserGame.updated_at.alias("usage_updated_at"),
                    GameDetail.name.alias("detail_name"),
                    GameDetail.description,
                    GameDetail.header_image,
                    GameDetail.last_updated.alias("details_updated_at"),
                    NotionMapping.notion_page_id,
                    NotionMapping.synced_at,
                )
                .join(
                    GameDetail,
                    peewee.JOIN.LEFT_OUTER,
                    on=(UserGame.app_id == GameDetail.app_id),
                )
                .switch(UserGame)
                .join(
                    NotionMapping,
                    peewee.JOIN.LEFT_OUTER,
                    on=(UserGame.app_id == NotionMapping.app_id),
                )
                .where(UserGame.user_id == user_id)
            )
            if watermark is not None:
                query = query.where(
                    (UserGame.updated_at > watermark) | (GameDetail.last_updated > watermark)
                )
            query = query.order_by(UserGame.updated_at.desc())
            return [_row_to_record(row) for row in query.dicts()]

        return await self._execute(_query, operation_name="get_sync_candidates", read_only=True)

    async def async_get_unmapped_app_ids(self, user_id: str, limit: int) -> list[int]:
        """Get up to ``limit`` app ids of the user's games with no mapping row at all."""

        def _query() -> list[int]:
            query = (
                UserGame.select(UserGame.app_id)
                .join(
                    NotionMapping,
                    peewee.JOIN.LEFT_OUTER,
                    on=(UserGame.app_id == NotionMapping.app_id),
                )
                .where((UserGame.user_id == user_id) & NotionMapping.app_id.is_null())
                .order_by(UserGame.updated_at.desc())
                .limit(limit)
            )
            return [row.app_id for row in query]

        return await self._execute(_query, operation_name="get_unmapped_app_ids", read_only=True)

    async def async_upsert_mapping(
        self, app_id: int, notion_page_id: str | None, synced_at: datetime | None
    ) -> None:
        """Insert or overwrite the mapping for ``app_id``.

        Passing ``None`` for both values clears the mapping in place.
        """

        def _upsert() -> None:
            now = utc_now()
            (
                NotionMapping.insert(
                    app_id=app_id,
                    notion_page_id=notion_page_id,
                    synced_at=synced_at,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict(
                    conflict_target=[NotionMapping.app_id],
                    update={
                        NotionMapping.notion_page_id: notion_page_id,
                        NotionMapping.synced_at: synced_at,
                        NotionMapping.updated_at: now,
                    },
                )
                .execute()
            )

        await self._execute(_upsert, operation_name="upsert_notion_mapping")

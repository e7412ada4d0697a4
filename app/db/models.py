"""Peewee ORM models for the game library database."""

from __future__ import annotations

import datetime as _dt
from typing import Any

import peewee

from app.core.time_utils import UTC

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    def save(self, *args: Any, **kwargs: Any) -> int:
        """Keep updated_at current on every save."""
        if hasattr(self, "updated_at"):
            self.updated_at = _utcnow()
        return super().save(*args, **kwargs)

    class Meta:
        database = database_proxy
        legacy_table_names = False


def _utcnow() -> _dt.datetime:
    """Timezone-aware UTC now (avoids deprecated datetime.utcnow)."""
    return _dt.datetime.now(UTC)


class UserGame(BaseModel):
    """Per-user library entry; ``updated_at`` tracks usage data changes."""

    id = peewee.AutoField()
    user_id = peewee.TextField()
    app_id = peewee.IntegerField()
    name = peewee.TextField(null=True)
    playtime_forever = peewee.IntegerField(null=True)  # minutes
    last_played = peewee.DateTimeField(null=True)
    created_at = peewee.DateTimeField(default=_utcnow)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "user_games"
        indexes = (
            (("user_id", "app_id"), True),
            (("updated_at",), False),
        )


class GameDetail(BaseModel):
    """Store details shared by every owner of a game."""

    app_id = peewee.IntegerField(primary_key=True)
    name = peewee.TextField(null=True)
    description = peewee.TextField(null=True)  # HTML
    header_image = peewee.TextField(null=True)
    last_updated = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "game_details"


class NotionMapping(BaseModel):
    """Association between a game and its Notion page.

    ``notion_page_id`` is nullable so an invalidated mapping can be cleared in
    place instead of deleted.
    """

    app_id = peewee.IntegerField(primary_key=True)
    notion_page_id = peewee.TextField(null=True)
    synced_at = peewee.DateTimeField(null=True)
    created_at = peewee.DateTimeField(default=_utcnow)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "notion_mappings"


ALL_MODELS: tuple[type[BaseModel], ...] = (
    UserGame,
    GameDetail,
    NotionMapping,
)

"""Protocol definitions (ports) for Notion sync.

The orchestration only depends on these, not on httpx or peewee.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager
    from datetime import datetime

    from app.adapters.notion.models import NotionDatabase, NotionPage
    from app.adapters.notion.sync.records import GameSyncRecord
    from app.config.integrations import NotionConfig


class NotionPagesProtocol(Protocol):
    async def retrieve_page(self, page_id: str) -> NotionPage: ...

    async def create_page(
        self,
        *,
        parent: dict[str, str],
        properties: dict[str, Any],
        children: list[dict[str, Any]],
        cover: dict[str, Any] | None = None,
    ) -> NotionPage: ...

    async def update_page(
        self,
        page_id: str,
        *,
        properties: dict[str, Any],
        cover: dict[str, Any] | None = None,
    ) -> NotionPage: ...

    async def find_page_id_by_number(
        self,
        *,
        database_id: str,
        data_source_id: str | None,
        property_name: str,
        value: int,
    ) -> str | None: ...


class NotionSchemaClient(Protocol):
    async def retrieve_database(self, database_id: str) -> NotionDatabase: ...

    async def create_database(
        self, *, parent_page_id: str, title: str, properties: dict[str, Any]
    ) -> NotionDatabase: ...

    async def update_collection_properties(
        self, *, database_id: str, data_source_id: str | None, properties: dict[str, Any]
    ) -> None: ...


class NotionClientProtocol(NotionPagesProtocol, NotionSchemaClient, Protocol):
    pass


class NotionClientFactory(Protocol):
    def __call__(
        self, config: NotionConfig
    ) -> AbstractAsyncContextManager[NotionClientProtocol]: ...


class NotionMappingWriter(Protocol):
    async def async_upsert_mapping(
        self, app_id: int, notion_page_id: str | None, synced_at: datetime | None
    ) -> None: ...


class NotionSyncRepository(NotionMappingWriter, Protocol):
    async def async_get_sync_candidates(
        self, user_id: str, since: datetime | None = None
    ) -> list[GameSyncRecord]: ...

    async def async_get_unmapped_app_ids(self, user_id: str, limit: int) -> list[int]: ...

"""Keep local page mappings consistent with what exists in Notion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.adapters.notion.client import NotionNotFoundError
from app.adapters.notion.sync.constants import PROP_APP_ID

if TYPE_CHECKING:
    from app.adapters.notion.models import NotionCollection
    from app.adapters.notion.sync.protocols import NotionMappingWriter, NotionPagesProtocol
    from app.adapters.notion.sync.records import GameSyncRecord, PageMapping

logger = logging.getLogger(__name__)


class PageReconciler:
    """Validate recorded page ids and recover lost ones by App ID.

    Remote failures never escape: a page that cannot be confirmed, or that sits
    in the trash, is treated as gone, and a lookup that fails is treated as "no page".
    """

    def __init__(
        self,
        client: NotionPagesProtocol,
        repository: NotionMappingWriter,
        *,
        correlation_id: str | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        self._correlation_id = correlation_id

    async def reconcile(self, record: GameSyncRecord, collection: NotionCollection) -> PageMapping:
        mapping = record.mapping

        if mapping.notion_page_id and not await self._page_in_collection(
            mapping.notion_page_id, collection, app_id=record.app_id
        ):
            logger.info(
                "notion_mapping_invalidated",
                extra={
                    "correlation_id": self._correlation_id,
                    "app_id": record.app_id,
                    "page_id": mapping.notion_page_id,
                },
            )
            mapping.invalidate()
            await self._repository.async_upsert_mapping(record.app_id, None, None)

        if not mapping.notion_page_id:
            page_id = await self.lookup_page_id(record.app_id, collection)
            if page_id:
                mapping.adopt(page_id)
                await self._repository.async_upsert_mapping(record.app_id, page_id, None)
                logger.info(
                    "notion_mapping_recovered",
                    extra={
                        "correlation_id": self._correlation_id,
                        "app_id": record.app_id,
                        "page_id": page_id,
                    },
                )

        return mapping

    async def _page_in_collection(
        self, page_id: str, collection: NotionCollection, *, app_id: int
    ) -> bool:
        try:
            page = await self._client.retrieve_page(page_id)
        except NotionNotFoundError:
            return False
        except Exception as exc:
            logger.warning(
                "notion_page_validation_failed",
                extra={
                    "correlation_id": self._correlation_id,
                    "app_id": app_id,
                    "page_id": page_id,
                    "error": str(exc),
                },
            )
            return False
        if page.in_trash or page.archived:
            return False
        return collection.contains(page.parent)

    async def lookup_page_id(self, app_id: int, collection: NotionCollection) -> str | None:
        """Find an existing page for ``app_id`` in the collection, or None."""
        try:
            return await self._client.find_page_id_by_number(
                database_id=collection.database_id,
                data_source_id=collection.data_source_id,
                property_name=PROP_APP_ID,
                value=app_id,
            )
        except Exception as exc:
            logger.warning(
                "notion_page_lookup_failed",
                extra={
                    "correlation_id": self._correlation_id,
                    "app_id": app_id,
                    "error": str(exc),
                },
            )
            return None

"""Paced page writes."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from app.adapters.notion.sync.constants import REQUEST_INTERVAL_SECONDS
from app.core.time_utils import utc_now

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from app.adapters.notion.models import NotionCollection
    from app.adapters.notion.sync.protocols import NotionMappingWriter, NotionPagesProtocol

logger = logging.getLogger(__name__)


class RateLimitedPageWriter:
    """Create or update a page, persist its mapping, then wait out the interval.

    Failures propagate untouched; nothing here retries a write.
    """

    def __init__(
        self,
        client: NotionPagesProtocol,
        repository: NotionMappingWriter,
        *,
        interval_seconds: float = REQUEST_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        correlation_id: str | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        self._interval = interval_seconds
        self._sleep = sleep
        self._correlation_id = correlation_id

    async def pause(self) -> None:
        if self._interval > 0:
            await self._sleep(self._interval)

    async def upsert_page(
        self,
        *,
        app_id: int,
        collection: NotionCollection,
        properties: dict[str, Any],
        cover: dict[str, Any] | None,
        children: list[dict[str, Any]],
        existing_page_id: str | None,
    ) -> str:
        if existing_page_id:
            await self._client.update_page(existing_page_id, properties=properties, cover=cover)
            page_id = existing_page_id
        else:
            page = await self._client.create_page(
                parent=collection.page_parent(),
                properties=properties,
                children=children,
                cover=cover,
            )
            page_id = page.id

        await self._repository.async_upsert_mapping(app_id, page_id, utc_now())
        logger.debug(
            "notion_page_written",
            extra={
                "correlation_id": self._correlation_id,
                "app_id": app_id,
                "page_id": page_id,
                "created": not existing_page_id,
            },
        )
        await self.pause()
        return page_id

"""One-way sync of a user's game library into a Notion database."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from app.adapters.notion.client import NotionClient
from app.adapters.notion.models import BatchSyncReport, SyncResult
from app.adapters.notion.provisioning import NotionProvisioner
from app.adapters.notion.sync.blocks import html_to_blocks
from app.adapters.notion.sync.properties import build_cover, build_properties
from app.adapters.notion.sync.reconciler import PageReconciler
from app.adapters.notion.sync.staleness import is_up_to_date
from app.adapters.notion.sync.writer import RateLimitedPageWriter
from app.core.logging_utils import generate_correlation_id
from app.core.time_utils import utc_now

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from app.adapters.notion.models import NotionCollection
    from app.adapters.notion.sync.protocols import (
        NotionClientFactory,
        NotionClientProtocol,
        NotionSyncRepository,
    )
    from app.adapters.notion.sync.records import GameSyncRecord
    from app.config.integrations import NotionConfig

logger = logging.getLogger(__name__)


def _default_client_factory(config: NotionConfig) -> NotionClient:
    return NotionClient(
        api_key=config.api_key,
        api_url=config.api_url,
        notion_version=config.notion_version,
    )


class NotionSyncService:
    """Push games to Notion: reconcile, skip fresh pages, write the rest.

    Records are processed strictly one after another; a failing record is
    reported and never stops the batch.
    """

    def __init__(
        self,
        config: NotionConfig,
        repository: NotionSyncRepository,
        client_factory: NotionClientFactory | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self._repository = repository
        self._client_factory = client_factory or _default_client_factory
        self._sleep = sleep

    def _writer(
        self, client: NotionClientProtocol, *, correlation_id: str | None = None
    ) -> RateLimitedPageWriter:
        return RateLimitedPageWriter(
            client,
            self._repository,
            interval_seconds=self.config.request_interval_seconds,
            sleep=self._sleep,
            correlation_id=correlation_id,
        )

    async def sync_one(
        self,
        record: GameSyncRecord,
        collection: NotionCollection,
        *,
        reconciler: PageReconciler,
        writer: RateLimitedPageWriter,
    ) -> SyncResult:
        """Sync a single game. Write and persistence errors propagate."""
        mapping = await reconciler.reconcile(record, collection)
        if is_up_to_date(record, mapping):
            return SyncResult(
                app_id=record.app_id, status="skipped", notion_page_id=mapping.notion_page_id
            )

        existing_page_id = mapping.notion_page_id
        page_id = await writer.upsert_page(
            app_id=record.app_id,
            collection=collection,
            properties=build_properties(record, synced_at=utc_now()),
            cover=build_cover(record),
            children=html_to_blocks(record.description),
            existing_page_id=existing_page_id,
        )
        return SyncResult(
            app_id=record.app_id,
            status="updated" if existing_page_id else "created",
            notion_page_id=page_id,
        )

    async def backfill_mappings(
        self,
        user_id: str,
        collection: NotionCollection,
        *,
        reconciler: PageReconciler,
        writer: RateLimitedPageWriter,
        correlation_id: str | None = None,
    ) -> int:
        """Adopt existing Notion pages for games that have never been mapped.

        Best effort: failures are logged and the count of recovered pages is returned.
        """
        recovered = 0
        try:
            app_ids = await self._repository.async_get_unmapped_app_ids(
                user_id, self.config.backfill_limit
            )
        except Exception as exc:
            logger.warning(
                "notion_backfill_failed",
                extra={"correlation_id": correlation_id, "error": str(exc)},
            )
            return 0

        for app_id in app_ids:
            try:
                page_id = await reconciler.lookup_page_id(app_id, collection)
                if page_id:
                    await self._repository.async_upsert_mapping(app_id, page_id, None)
                    recovered += 1
            except Exception as exc:
                logger.warning(
                    "notion_backfill_item_failed",
                    extra={"correlation_id": correlation_id, "app_id": app_id, "error": str(exc)},
                )
            await writer.pause()

        if app_ids:
            logger.info(
                "notion_backfill_complete",
                extra={
                    "correlation_id": correlation_id,
                    "checked": len(app_ids),
                    "recovered": recovered,
                },
            )
        return recovered

    async def sync_batch(
        self,
        user_id: str,
        since: datetime | None = None,
        *,
        ensure_properties: bool = False,
    ) -> BatchSyncReport:
        """Sync every candidate game of ``user_id`` changed after ``since`` (all when None).

        With ``ensure_properties`` the property schema is patched onto the resolved
        collection before any page is written.

        Raises:
            ConfigurationError: Notion credentials or database ids are missing.
        """
        start_time = time.time()
        correlation_id = generate_correlation_id()
        report = BatchSyncReport()

        logger.info(
            "notion_sync_started",
            extra={
                "correlation_id": correlation_id,
                "user_id": user_id,
                "since": since.isoformat() if since else None,
            },
        )

        async with self._client_factory(self.config) as client:
            provisioner = NotionProvisioner(self.config, client)
            collection = await provisioner.ensure_setup()
            if ensure_properties:
                await provisioner.ensure_properties(collection)
            reconciler = PageReconciler(client, self._repository, correlation_id=correlation_id)
            writer = self._writer(client, correlation_id=correlation_id)

            await self.backfill_mappings(
                user_id,
                collection,
                reconciler=reconciler,
                writer=writer,
                correlation_id=correlation_id,
            )

            records = await self._repository.async_get_sync_candidates(user_id, since)
            for record in records:
                try:
                    result = await self.sync_one(
                        record, collection, reconciler=reconciler, writer=writer
                    )
                except Exception as exc:
                    logger.warning(
                        "notion_sync_item_failed",
                        extra={
                            "correlation_id": correlation_id,
                            "app_id": record.app_id,
                            "error": str(exc),
                        },
                    )
                    result = SyncResult(app_id=record.app_id, status="skipped", error=str(exc))
                report.results.append(result)

        logger.info(
            "notion_sync_complete",
            extra={
                "correlation_id": correlation_id,
                "user_id": user_id,
                "total": report.total,
                "created": report.created,
                "updated": report.updated,
                "skipped": report.skipped,
                "failed": report.failed,
                "duration_seconds": round(time.time() - start_time, 3),
            },
        )
        return report

"""Unit tests for PageReconciler and RateLimitedPageWriter.

Covers:
- valid mapping kept without any lookup
- missing, trashed or foreign-parent pages and unexpected errors invalidate and
  persist the cleared mapping
- lost mapping recovered by App ID (timestamp cleared, persisted immediately)
- lookup failures fall through to "no page"
- writer: create vs update, mapping persisted, pause after each write, errors propagate
"""

from __future__ import annotations

import unittest
from datetime import UTC, datetime
from unittest.mock import AsyncMock

from app.adapters.notion.client import NotionAPIError, NotionNotFoundError
from app.adapters.notion.models import NotionCollection, NotionPage, NotionParent
from app.adapters.notion.sync.records import GameSyncRecord, PageMapping
from app.adapters.notion.sync.reconciler import PageReconciler
from app.adapters.notion.sync.writer import RateLimitedPageWriter

COLLECTION = NotionCollection(database_id="db-1", data_source_id="ds-1")
SYNCED = datetime(2024, 1, 2, tzinfo=UTC)


def _record(page_id: str | None = None, synced_at: datetime | None = None) -> GameSyncRecord:
    return GameSyncRecord(
        app_id=440,
        mapping=PageMapping(app_id=440, notion_page_id=page_id, synced_at=synced_at),
    )


def _page(page_id: str, **parent: str) -> NotionPage:
    return NotionPage(id=page_id, parent=NotionParent(**parent))


class TestPageReconciler(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.client = AsyncMock()
        self.client.find_page_id_by_number.return_value = None
        self.repository = AsyncMock()
        self.reconciler = PageReconciler(self.client, self.repository, correlation_id="cid")

    async def test_mapping_in_collection_is_kept(self):
        self.client.retrieve_page.return_value = _page(
            "page-1", type="data_source_id", data_source_id="ds-1"
        )
        record = _record("page-1", SYNCED)

        mapping = await self.reconciler.reconcile(record, COLLECTION)

        assert mapping.notion_page_id == "page-1"
        assert mapping.synced_at == SYNCED
        self.client.find_page_id_by_number.assert_not_awaited()
        self.repository.async_upsert_mapping.assert_not_awaited()

    async def test_database_parent_matches_with_dashes(self):
        collection = NotionCollection(database_id="0a1b2c3d4e5f", data_source_id=None)
        self.client.retrieve_page.return_value = _page(
            "page-1", type="database_id", database_id="0A1B2C3D-4E5F"
        )

        mapping = await self.reconciler.reconcile(_record("page-1", SYNCED), collection)

        assert mapping.notion_page_id == "page-1"

    async def test_foreign_parent_invalidates_mapping(self):
        self.client.retrieve_page.return_value = _page(
            "page-1", type="database_id", database_id="other-db"
        )
        record = _record("page-1", SYNCED)

        mapping = await self.reconciler.reconcile(record, COLLECTION)

        assert mapping.notion_page_id is None
        assert mapping.synced_at is None
        self.repository.async_upsert_mapping.assert_awaited_once_with(440, None, None)
        self.client.find_page_id_by_number.assert_awaited_once()

    async def test_missing_page_invalidates_mapping(self):
        self.client.retrieve_page.side_effect = NotionNotFoundError(
            "gone", status_code=404, code="object_not_found"
        )

        mapping = await self.reconciler.reconcile(_record("page-1", SYNCED), COLLECTION)

        assert mapping.notion_page_id is None
        self.repository.async_upsert_mapping.assert_awaited_once_with(440, None, None)

    async def test_trashed_page_invalidates_mapping(self):
        page = _page("page-1", type="data_source_id", data_source_id="ds-1")
        self.client.retrieve_page.return_value = page.model_copy(
            update={"in_trash": True, "archived": True}
        )

        mapping = await self.reconciler.reconcile(_record("page-1", SYNCED), COLLECTION)

        assert mapping.notion_page_id is None
        self.repository.async_upsert_mapping.assert_awaited_once_with(440, None, None)

    async def test_archived_page_invalidates_mapping(self):
        page = _page("page-1", type="data_source_id", data_source_id="ds-1")
        self.client.retrieve_page.return_value = page.model_copy(update={"archived": True})

        mapping = await self.reconciler.reconcile(_record("page-1", SYNCED), COLLECTION)

        assert mapping.notion_page_id is None

    async def test_unexpected_validation_error_invalidates_mapping(self):
        self.client.retrieve_page.side_effect = NotionAPIError("boom", status_code=500)

        with self.assertLogs("app.adapters.notion.sync.reconciler", level="WARNING") as logs:
            mapping = await self.reconciler.reconcile(_record("page-1", SYNCED), COLLECTION)

        assert mapping.notion_page_id is None
        assert any("notion_page_validation_failed" in line for line in logs.output)

    async def test_lost_mapping_is_recovered_by_app_id(self):
        self.client.find_page_id_by_number.return_value = "page-9"

        mapping = await self.reconciler.reconcile(_record(), COLLECTION)

        assert mapping.notion_page_id == "page-9"
        assert mapping.synced_at is None
        self.client.find_page_id_by_number.assert_awaited_once_with(
            database_id="db-1",
            data_source_id="ds-1",
            property_name="App ID",
            value=440,
        )
        self.repository.async_upsert_mapping.assert_awaited_once_with(440, "page-9", None)
        self.client.retrieve_page.assert_not_awaited()

    async def test_invalidated_mapping_can_be_recovered_in_same_pass(self):
        self.client.retrieve_page.return_value = _page("page-1", database_id="other-db")
        self.client.find_page_id_by_number.return_value = "page-2"

        mapping = await self.reconciler.reconcile(_record("page-1", SYNCED), COLLECTION)

        assert mapping.notion_page_id == "page-2"
        assert self.repository.async_upsert_mapping.await_count == 2

    async def test_lookup_failure_means_no_page(self):
        self.client.find_page_id_by_number.side_effect = NotionAPIError("down", status_code=503)

        with self.assertLogs("app.adapters.notion.sync.reconciler", level="WARNING") as logs:
            mapping = await self.reconciler.reconcile(_record(), COLLECTION)

        assert mapping.notion_page_id is None
        self.repository.async_upsert_mapping.assert_not_awaited()
        assert any("notion_page_lookup_failed" in line for line in logs.output)


class TestRateLimitedPageWriter(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.client = AsyncMock()
        self.client.create_page.return_value = NotionPage(id="new-page")
        self.repository = AsyncMock()
        self.sleep = AsyncMock()
        self.writer = RateLimitedPageWriter(
            self.client,
            self.repository,
            interval_seconds=0.4,
            sleep=self.sleep,
            correlation_id="cid",
        )

    async def _upsert(self, existing_page_id: str | None) -> str:
        return await self.writer.upsert_page(
            app_id=440,
            collection=COLLECTION,
            properties={"App ID": {"number": 440}},
            cover=None,
            children=[{"type": "callout"}],
            existing_page_id=existing_page_id,
        )

    async def test_create_uses_collection_parent_and_persists(self):
        page_id = await self._upsert(None)

        assert page_id == "new-page"
        kwargs = self.client.create_page.await_args.kwargs
        assert kwargs["parent"] == {"data_source_id": "ds-1"}
        assert kwargs["children"] == [{"type": "callout"}]
        app_id, stored_id, synced_at = self.repository.async_upsert_mapping.await_args.args
        assert (app_id, stored_id) == (440, "new-page")
        assert synced_at is not None
        self.sleep.assert_awaited_once_with(0.4)

    async def test_update_leaves_children_alone(self):
        page_id = await self._upsert("page-1")

        assert page_id == "page-1"
        self.client.update_page.assert_awaited_once_with(
            "page-1", properties={"App ID": {"number": 440}}, cover=None
        )
        self.client.create_page.assert_not_awaited()
        self.sleep.assert_awaited_once_with(0.4)

    async def test_write_error_propagates_without_persisting(self):
        self.client.update_page.side_effect = NotionAPIError("conflict", status_code=409)

        with self.assertRaises(NotionAPIError):
            await self._upsert("page-1")

        self.repository.async_upsert_mapping.assert_not_awaited()
        self.client.update_page.assert_awaited_once()

    async def test_zero_interval_does_not_sleep(self):
        writer = RateLimitedPageWriter(
            self.client, self.repository, interval_seconds=0, sleep=self.sleep
        )
        await writer.pause()
        self.sleep.assert_not_awaited()

    async def test_write_is_logged_with_correlation_id(self):
        with self.assertLogs("app.adapters.notion.sync.writer", level="DEBUG") as logs:
            await self._upsert(None)

        [record] = [r for r in logs.records if r.getMessage() == "notion_page_written"]
        assert record.correlation_id == "cid"
        assert record.page_id == "new-page"

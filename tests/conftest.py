"""Pytest configuration and shared fixtures.

This module provides common fixtures for all tests.
"""

import os

import pytest

from app.adapters.notion.sync.records import GameSyncRecord, PageMapping

# Keep developer credentials out of the test run.
for _key in [k for k in os.environ if k.startswith("NOTION_")]:
    os.environ.pop(_key)


@pytest.fixture
def make_record():
    """Factory for GameSyncRecord instances with an optional mapping."""

    def _make(app_id: int = 10, *, page_id=None, synced_at=None, **kwargs) -> GameSyncRecord:
        return GameSyncRecord(
            app_id=app_id,
            mapping=PageMapping(app_id=app_id, notion_page_id=page_id, synced_at=synced_at),
            **kwargs,
        )

    return _make

"""Tests for structured logging helpers."""

from __future__ import annotations

import io
import json
import logging
import unittest

from app.core.logging_utils import (
    EnhancedJsonFormatter,
    generate_correlation_id,
    setup_json_logging,
)


class TestEnhancedJsonFormatter(unittest.TestCase):
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            name="app.adapters.notion.sync_service",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="notion_sync_complete",
            args=None,
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_extra_fields_and_correlation_id(self):
        formatter = EnhancedJsonFormatter(include_location=False)

        payload = json.loads(
            formatter.format(self._record(correlation_id="abc123", total=3, failed=1))
        )

        assert payload["message"] == "notion_sync_complete"
        assert payload["level"] == "INFO"
        assert payload["correlation_id"] == "abc123"
        assert payload["extra"] == {"total": 3, "failed": 1}
        assert "line" not in payload

    def test_location_included_by_default(self):
        payload = json.loads(EnhancedJsonFormatter().format(self._record()))
        assert payload["line"] == 10
        assert "extra" not in payload


class TestSetupJsonLogging(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        self._saved = (root.handlers[:], root.level)

    def tearDown(self) -> None:
        root = logging.getLogger()
        root.handlers[:] = self._saved[0]
        root.setLevel(self._saved[1])

    def test_stdlib_json_stream(self):
        stream = io.StringIO()
        setup_json_logging("INFO", use_loguru=False, stream=stream)

        logging.getLogger("app.test").info("notion_page_created", extra={"page_id": "p1"})

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        event = next(line for line in lines if line["message"] == "notion_page_created")
        assert event["extra"] == {"page_id": "p1"}
        assert logging.getLogger("httpx").level == logging.WARNING


def test_correlation_ids_are_short_and_unique():
    ids = {generate_correlation_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) == 12 for i in ids)

"""Sync a user's Steam library into Notion.

Usage:
    python -m app.cli.notion_sync --user-id USER_ID [--since ISO8601] [--json] [--ensure-props]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING

from app.adapters.notion.errors import ConfigurationError
from app.config import load_config
from app.core.logging_utils import setup_json_logging
from app.core.time_utils import ensure_datetime

if TYPE_CHECKING:
    from datetime import datetime

    from app.adapters.notion.models import BatchSyncReport
    from app.config import AppConfig

logger = logging.getLogger(__name__)


def _parse_since(value: str) -> datetime:
    parsed = ensure_datetime(value)
    if parsed is None:
        msg = f"invalid ISO 8601 timestamp: {value!r}"
        raise argparse.ArgumentTypeError(msg)
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync a user's game library into Notion")
    parser.add_argument("--user-id", required=True, help="Owner of the games to sync")
    parser.add_argument(
        "--since",
        type=_parse_since,
        default=None,
        help="Only sync games changed after this ISO 8601 timestamp",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the full report as JSON instead of a summary"
    )
    parser.add_argument(
        "--ensure-props",
        action="store_true",
        help="Add missing property columns to the Notion database before syncing",
    )
    return parser


def _print_summary(report: BatchSyncReport) -> None:
    print("\n=== Notion Sync Summary ===")
    print(
        f"Total: {report.total} | created: {report.created}, updated: {report.updated}, "
        f"skipped: {report.skipped}, failed: {report.failed}"
    )
    failures = [r for r in report.results if r.failed]
    if failures:
        print(f"\nErrors ({len(failures)}):")
        for result in failures[:10]:
            print(f"  - app {result.app_id}: {result.error}")
        if len(failures) > 10:
            print(f"  ... and {len(failures) - 10} more")


async def run_sync(
    cfg: AppConfig,
    user_id: str,
    *,
    since: datetime | None = None,
    as_json: bool = False,
    ensure_props: bool = False,
) -> int:
    """Run one sync batch.

    Returns:
        Exit code (0 when no record failed, 1 otherwise)
    """
    from app.adapters.notion import NotionSyncService
    from app.db.session import DatabaseSessionManager
    from app.infrastructure.persistence.sqlite.repositories import (
        SqliteNotionSyncRepositoryAdapter,
    )

    try:
        db = DatabaseSessionManager(cfg.runtime.db_path)
        db.migrate()

        service = NotionSyncService(cfg.notion, SqliteNotionSyncRepositoryAdapter(db))
        report = await service.sync_batch(user_id, since=since, ensure_properties=ensure_props)
    except ConfigurationError as exc:
        logger.error("notion_sync_misconfigured", extra={"error": str(exc)})
        print(f"\nERROR: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.exception("notion_sync_failed")
        print(f"\nERROR: {exc}", file=sys.stderr)
        return 1

    if as_json:
        print(json.dumps(report.to_payload(), ensure_ascii=False, indent=2))
    else:
        _print_summary(report)
    return 0 if report.failed == 0 else 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config()
    except RuntimeError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    setup_json_logging(cfg.runtime.log_level, log_file=cfg.runtime.log_file, stream=sys.stderr)
    return asyncio.run(
        run_sync(
            cfg,
            args.user_id,
            since=args.since,
            as_json=args.json,
            ensure_props=args.ensure_props,
        )
    )


if __name__ == "__main__":
    sys.exit(main())

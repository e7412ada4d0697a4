#!/usr/bin/env python3
"""Cron-triggered Notion sync script.

Example crontab entry (hourly, incremental):
    0 * * * * cd /srv/game-library && .venv/bin/python scripts/notion_sync.py --user-id 76561198000000000 >> /var/log/notion_sync.log 2>&1

Usage:
    python scripts/notion_sync.py --user-id USER_ID [--since ISO8601] [--json] [--ensure-props]
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.cli.notion_sync import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

from .integrations import NotionConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config

__all__ = [
    "AppConfig",
    "NotionConfig",
    "RuntimeConfig",
    "Settings",
    "load_config",
]

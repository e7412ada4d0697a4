from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

logger = logging.getLogger(__name__)

DEFAULT_NOTION_API_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2025-09-03"


class NotionConfig(BaseModel):
    """Notion integration configuration for game library synchronization."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_key: str = Field(default="", validation_alias="NOTION_API_KEY")
    database_id: str = Field(default="", validation_alias="NOTION_DATABASE_ID")
    data_source_id: str = Field(default="", validation_alias="NOTION_DATA_SOURCE_ID")
    root_page_id: str = Field(default="", validation_alias="NOTION_ROOT_PAGE_ID")
    auto_provision: bool = Field(default=True, validation_alias="NOTION_AUTO_PROVISION")
    api_url: str = Field(default=DEFAULT_NOTION_API_URL, validation_alias="NOTION_API_URL")
    notion_version: str = Field(default=DEFAULT_NOTION_VERSION, validation_alias="NOTION_VERSION")
    request_interval_ms: int = Field(
        default=400,
        validation_alias="NOTION_REQUEST_INTERVAL_MS",
        description="Minimum pause after every page write (~2.5 requests/second)",
    )
    backfill_limit: int = Field(
        default=50,
        validation_alias="NOTION_BACKFILL_LIMIT",
        description="Unmapped games checked for an existing page per batch",
    )
    env_file: str | None = Field(
        default=None,
        validation_alias="NOTION_ENV_FILE",
        description="Optional env file where discovered database ids are written back",
    )

    @field_validator("api_key", "database_id", "data_source_id", "root_page_id", mode="before")
    @classmethod
    def _strip_identifier(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or DEFAULT_NOTION_API_URL).strip()
        if not url:
            return DEFAULT_NOTION_API_URL
        return url.rstrip("/")

    @field_validator("notion_version", mode="before")
    @classmethod
    def _validate_version(cls, value: Any) -> str:
        return str(value or DEFAULT_NOTION_VERSION).strip() or DEFAULT_NOTION_VERSION

    @field_validator("auto_provision", mode="before")
    @classmethod
    def _parse_auto_provision(cls, value: Any) -> bool:
        if value in (None, ""):
            return True
        if isinstance(value, bool):
            return value
        # Only an explicit "false" disables provisioning.
        return str(value).strip().lower() != "false"

    @field_validator("request_interval_ms", "backfill_limit", mode="before")
    @classmethod
    def _parse_int_fields(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        try:
            parsed = int(str(value if value not in (None, "") else default))
        except ValueError as exc:
            msg = f"{info.field_name.replace('_', ' ')} must be a valid integer"
            raise ValueError(msg) from exc
        if info.field_name == "request_interval_ms" and parsed < 0:
            msg = "Request interval must not be negative"
            raise ValueError(msg)
        if info.field_name == "backfill_limit" and parsed <= 0:
            msg = "Backfill limit must be positive"
            raise ValueError(msg)
        return parsed

    @field_validator("env_file", mode="before")
    @classmethod
    def _validate_env_file(cls, value: Any) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        if not trimmed:
            return None
        if "\x00" in trimmed:
            msg = "Env file path contains invalid characters"
            raise ValueError(msg)
        return trimmed

    @property
    def request_interval_seconds(self) -> float:
        return self.request_interval_ms / 1000.0

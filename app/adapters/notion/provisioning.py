"""Resolve (and if needed create) the Notion database games are synced into."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from app.adapters.notion.errors import ConfigurationError
from app.adapters.notion.models import NotionCollection
from app.adapters.notion.sync.constants import COLLECTION_PROPERTIES, DATABASE_TITLE, PROP_NAME

if TYPE_CHECKING:
    from app.adapters.notion.sync.protocols import NotionSchemaClient
    from app.config.integrations import NotionConfig

logger = logging.getLogger(__name__)


def persist_env_value(env_file: str | Path, key: str, value: str) -> bool:
    """Replace or append ``KEY=value`` in an env file. Returns False on failure."""
    path = Path(env_file)
    line = f"{key}={value}"
    try:
        content = path.read_text(encoding="utf-8") if path.exists() else ""
        pattern = re.compile(rf"^{re.escape(key)}=.*$", re.MULTILINE)
        if pattern.search(content):
            content = pattern.sub(lambda _: line, content, count=1)
        else:
            if content and not content.endswith("\n"):
                content += "\n"
            content += f"{line}\n"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        logger.warning(
            "notion_env_persist_failed",
            extra={"env_file": str(path), "key": key, "error": str(exc)},
        )
        return False
    return True


class NotionProvisioner:
    """Turn configuration into a usable NotionCollection.

    Called once per sync run; the result is passed along explicitly.
    """

    def __init__(self, config: NotionConfig, client: NotionSchemaClient) -> None:
        self._config = config
        self._client = client

    def _persist(self, key: str, value: str) -> bool:
        if not self._config.env_file:
            return False
        return persist_env_value(self._config.env_file, key, value)

    async def ensure_setup(self) -> NotionCollection:
        config = self._config
        if not config.api_key:
            raise ConfigurationError("Notion is not configured: set NOTION_API_KEY")

        if config.database_id and config.data_source_id:
            return NotionCollection(
                database_id=config.database_id, data_source_id=config.data_source_id
            )

        if config.database_id:
            database = await self._client.retrieve_database(config.database_id)
            data_source_id = database.first_data_source_id
            persisted = False
            if data_source_id:
                persisted = self._persist("NOTION_DATA_SOURCE_ID", data_source_id)
            else:
                logger.warning(
                    "notion_data_source_missing",
                    extra={"database_id": config.database_id},
                )
            return NotionCollection(
                database_id=config.database_id,
                data_source_id=data_source_id,
                persisted=persisted,
            )

        if not config.root_page_id:
            raise ConfigurationError(
                "NOTION_DATABASE_ID is not set and NOTION_ROOT_PAGE_ID is missing: share a page "
                "with the integration and set its id as NOTION_ROOT_PAGE_ID"
            )
        if not config.auto_provision:
            raise ConfigurationError(
                "NOTION_AUTO_PROVISION=false: create the database manually and set "
                "NOTION_DATABASE_ID / NOTION_DATA_SOURCE_ID"
            )

        database = await self._client.create_database(
            parent_page_id=config.root_page_id,
            title=DATABASE_TITLE,
            properties=COLLECTION_PROPERTIES,
        )
        data_source_id = database.first_data_source_id
        persisted = self._persist("NOTION_DATABASE_ID", database.id)
        if data_source_id:
            persisted = self._persist("NOTION_DATA_SOURCE_ID", data_source_id) or persisted

        logger.info(
            "notion_database_provisioned",
            extra={
                "database_id": database.id,
                "data_source_id": data_source_id,
                "persisted": persisted,
            },
        )
        return NotionCollection(
            database_id=database.id,
            data_source_id=data_source_id,
            created=True,
            persisted=persisted,
        )

    async def ensure_properties(self, collection: NotionCollection) -> None:
        """Add any missing property columns to an existing collection.

        The title column always exists and is left as is.
        """
        properties = {k: v for k, v in COLLECTION_PROPERTIES.items() if k != PROP_NAME}
        await self._client.update_collection_properties(
            database_id=collection.database_id,
            data_source_id=collection.data_source_id,
            properties=properties,
        )
        logger.info(
            "notion_properties_ensured",
            extra={"database_id": collection.database_id, "properties": sorted(properties)},
        )

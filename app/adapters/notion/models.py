"""Pydantic models for the Notion API and sync results."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field


def normalize_notion_id(value: str | None) -> str:
    """Notion ids show up both with and without dashes; compare them bare."""
    return (value or "").replace("-", "").strip().lower()


class NotionParent(BaseModel):
    """Parent reference of a page (database, data source, page or workspace)."""

    type: str | None = None
    database_id: str | None = None
    data_source_id: str | None = None
    page_id: str | None = None

    model_config = {"extra": "ignore"}


class NotionPage(BaseModel):
    id: str
    parent: NotionParent = Field(default_factory=NotionParent)
    archived: bool = False
    in_trash: bool = False
    properties: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "ignore"}


class NotionQueryResult(BaseModel):
    results: list[NotionPage] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None

    model_config = {"extra": "ignore"}


class NotionDataSourceRef(BaseModel):
    id: str
    name: str | None = None

    model_config = {"extra": "ignore"}


class NotionDatabase(BaseModel):
    id: str
    data_sources: list[NotionDataSourceRef] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @property
    def first_data_source_id(self) -> str | None:
        return self.data_sources[0].id if self.data_sources else None


class NotionCollection(BaseModel):
    """The database (and optional data source) pages are synced into."""

    model_config = ConfigDict(frozen=True)

    database_id: str
    data_source_id: str | None = None
    created: bool = False
    persisted: bool = False

    def page_parent(self) -> dict[str, str]:
        if self.data_source_id:
            return {"data_source_id": self.data_source_id}
        return {"database_id": self.database_id}

    def contains(self, parent: NotionParent) -> bool:
        """Whether a page with this parent lives inside the collection."""
        if self.data_source_id and parent.data_source_id:
            if normalize_notion_id(parent.data_source_id) == normalize_notion_id(
                self.data_source_id
            ):
                return True
        if parent.database_id:
            return normalize_notion_id(parent.database_id) == normalize_notion_id(
                self.database_id
            )
        return False


SyncStatus = Literal["created", "updated", "skipped"]


class SyncResult(BaseModel):
    """Outcome of syncing a single game."""

    model_config = ConfigDict(populate_by_name=True)

    app_id: int = Field(alias="appId")
    status: SyncStatus
    notion_page_id: str | None = Field(default=None, alias="notionPageId")
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class BatchSyncReport(BaseModel):
    """Aggregate of one sync invocation; built fresh per run, never persisted."""

    results: list[SyncResult] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return len(self.results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def created(self) -> int:
        return sum(1 for r in self.results if r.status == "created")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def updated(self) -> int:
        return sum(1 for r in self.results if r.status == "updated")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status == "skipped" and not r.failed)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.failed)

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the HTTP layer: camelCase keys, absent fields dropped."""
        return {
            "total": self.total,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
            "results": [r.model_dump(by_alias=True, exclude_none=True) for r in self.results],
        }

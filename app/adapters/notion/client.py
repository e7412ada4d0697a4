"""Notion API client."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from app.adapters.notion.models import (
    NotionDatabase,
    NotionPage,
    NotionQueryResult,
)
from app.config.integrations import DEFAULT_NOTION_API_URL, DEFAULT_NOTION_VERSION

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from typing import Self

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP status codes that should trigger a retry of an idempotent read
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 30.0  # seconds
DEFAULT_JITTER = 0.1  # 10% jitter


class NotionClientError(Exception):
    """Base exception for Notion client errors."""


class NotionAPIError(NotionClientError):
    """Notion answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        code: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.retry_after = retry_after


class NotionNotFoundError(NotionAPIError):
    """The requested object does not exist or is not shared with the integration."""


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return

    code: str | None = None
    message = response.text
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code")
        message = body.get("message") or message

    retry_after: float | None = None
    header = response.headers.get("Retry-After")
    if header:
        try:
            retry_after = float(header)
        except ValueError:
            retry_after = None

    error_cls = NotionNotFoundError if response.status_code == 404 else NotionAPIError
    raise error_cls(
        f"Notion API error {response.status_code} ({code or 'unknown'}): {message}",
        status_code=response.status_code,
        code=code,
        retry_after=retry_after,
    )


def _is_retryable_error(exc: Exception) -> bool:
    if isinstance(exc, NotionAPIError):
        return exc.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.ConnectError, httpx.TimeoutException))


def _calculate_delay(attempt: int, base_delay: float, max_delay: float, jitter: float) -> float:
    """Calculate delay with exponential backoff and jitter."""
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + delay * jitter * random.random()


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter: float = DEFAULT_JITTER,
    operation_name: str = "operation",
) -> T:
    """Execute an async function with exponential backoff retry.

    Non-retryable errors are re-raised immediately. Once retries are exhausted
    the last error is re-raised unchanged so callers can still tell a missing
    page apart from an outage.
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not _is_retryable_error(e) or attempt >= max_retries:
                if attempt:
                    logger.error(
                        "notion_retry_exhausted",
                        extra={
                            "operation": operation_name,
                            "attempts": attempt + 1,
                            "error": str(e),
                        },
                    )
                raise

            delay = _calculate_delay(attempt, base_delay, max_delay, jitter)
            if isinstance(e, NotionAPIError) and e.retry_after is not None:
                delay = min(max(delay, e.retry_after), max_delay)
            logger.warning(
                "notion_retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "delay_seconds": round(delay, 2),
                    "error": str(e),
                },
            )
            await asyncio.sleep(delay)
            attempt += 1


class NotionClient:
    """Async HTTP client for the Notion API.

    Reads are retried on transient failures; writes are sent exactly once.
    """

    DEFAULT_TIMEOUTS: dict[str, float] = {
        "retrieve_page": 15.0,
        "create_page": 30.0,
        "update_page": 30.0,
        "query": 30.0,
        "retrieve_database": 15.0,
        "create_database": 30.0,
        "update_data_source": 30.0,
        "update_database": 30.0,
    }

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_NOTION_API_URL,
        notion_version: str = DEFAULT_NOTION_VERSION,
        timeout: float = 30.0,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        retry_max_delay: float = DEFAULT_MAX_DELAY,
        endpoint_timeouts: dict[str, float] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Notion client.

        Args:
            api_key: Integration token
            api_url: Base URL for the Notion API
            notion_version: Value of the Notion-Version header
            timeout: Default request timeout in seconds
            max_retries: Maximum retry attempts for transient read failures
            retry_base_delay: Base delay between retries in seconds
            retry_max_delay: Maximum delay between retries in seconds
            endpoint_timeouts: Custom per-endpoint timeouts (overrides defaults)
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.notion_version = notion_version
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self.endpoint_timeouts = {**self.DEFAULT_TIMEOUTS}
        if endpoint_timeouts:
            self.endpoint_timeouts.update(endpoint_timeouts)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def get_timeout(self, endpoint: str) -> float:
        return self.endpoint_timeouts.get(endpoint, self.timeout)

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Notion-Version": self.notion_version,
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise NotionClientError("Client not initialized. Use async context manager.")
        return self._client

    async def _with_retry(self, func: Callable[[], Awaitable[T]], operation_name: str) -> T:
        return await retry_with_backoff(
            func,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            operation_name=operation_name,
        )

    async def _request(
        self, method: str, path: str, *, endpoint: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        response = await self.client.request(
            method, path, json=json, timeout=self.get_timeout(endpoint)
        )
        _raise_for_status(response)
        return response.json()

    async def retrieve_page(self, page_id: str) -> NotionPage:
        """Get a page; raises NotionNotFoundError when it is gone."""

        async def _fetch() -> NotionPage:
            data = await self._request("GET", f"/pages/{page_id}", endpoint="retrieve_page")
            return NotionPage.model_validate(data)

        return await self._with_retry(_fetch, f"retrieve_page({page_id})")

    async def create_page(
        self,
        *,
        parent: dict[str, str],
        properties: dict[str, Any],
        children: list[dict[str, Any]],
        cover: dict[str, Any] | None = None,
    ) -> NotionPage:
        payload: dict[str, Any] = {"parent": parent, "properties": properties, "children": children}
        if cover is not None:
            payload["cover"] = cover
        data = await self._request("POST", "/pages", endpoint="create_page", json=payload)
        page = NotionPage.model_validate(data)
        logger.info("notion_page_created", extra={"page_id": page.id})
        return page

    async def update_page(
        self,
        page_id: str,
        *,
        properties: dict[str, Any],
        cover: dict[str, Any] | None = None,
    ) -> NotionPage:
        """Update properties and cover. Page children are left untouched."""
        payload: dict[str, Any] = {"properties": properties}
        if cover is not None:
            payload["cover"] = cover
        data = await self._request(
            "PATCH", f"/pages/{page_id}", endpoint="update_page", json=payload
        )
        return NotionPage.model_validate(data)

    async def query_collection(
        self,
        *,
        database_id: str,
        data_source_id: str | None = None,
        filter: dict[str, Any] | None = None,
        page_size: int = 100,
        start_cursor: str | None = None,
    ) -> NotionQueryResult:
        """Query pages of a data source (or of a database on the legacy API)."""
        path = (
            f"/data_sources/{data_source_id}/query"
            if data_source_id
            else f"/databases/{database_id}/query"
        )
        payload: dict[str, Any] = {"page_size": page_size}
        if filter is not None:
            payload["filter"] = filter
        if start_cursor:
            payload["start_cursor"] = start_cursor

        async def _query() -> NotionQueryResult:
            data = await self._request("POST", path, endpoint="query", json=payload)
            return NotionQueryResult.model_validate(data)

        return await self._with_retry(_query, "query_collection")

    async def find_page_id_by_number(
        self,
        *,
        database_id: str,
        data_source_id: str | None,
        property_name: str,
        value: int,
    ) -> str | None:
        """Return the id of the first page whose number property equals ``value``."""
        result = await self.query_collection(
            database_id=database_id,
            data_source_id=data_source_id,
            filter={"property": property_name, "number": {"equals": value}},
            page_size=1,
        )
        return result.results[0].id if result.results else None

    async def retrieve_database(self, database_id: str) -> NotionDatabase:
        async def _fetch() -> NotionDatabase:
            data = await self._request(
                "GET", f"/databases/{database_id}", endpoint="retrieve_database"
            )
            return NotionDatabase.model_validate(data)

        return await self._with_retry(_fetch, f"retrieve_database({database_id})")

    async def create_database(
        self,
        *,
        parent_page_id: str,
        title: str,
        properties: dict[str, Any],
    ) -> NotionDatabase:
        payload = {
            "parent": {"type": "page_id", "page_id": parent_page_id},
            "title": [{"type": "text", "text": {"content": title}}],
            "initial_data_source": {"properties": properties},
        }
        data = await self._request("POST", "/databases", endpoint="create_database", json=payload)
        database = NotionDatabase.model_validate(data)
        logger.info("notion_database_created", extra={"database_id": database.id})
        return database

    async def update_collection_properties(
        self,
        *,
        database_id: str,
        data_source_id: str | None,
        properties: dict[str, Any],
    ) -> None:
        """Add or update property columns on the collection schema."""
        if data_source_id:
            await self._request(
                "PATCH",
                f"/data_sources/{data_source_id}",
                endpoint="update_data_source",
                json={"properties": properties},
            )
        else:
            await self._request(
                "PATCH",
                f"/databases/{database_id}",
                endpoint="update_database",
                json={"properties": properties},
            )

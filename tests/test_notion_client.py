"""Tests for NotionClient over httpx.MockTransport (no network)."""

from __future__ import annotations

import json
import unittest

import httpx

from app.adapters.notion.client import (
    NotionAPIError,
    NotionClient,
    NotionClientError,
    NotionNotFoundError,
)


def _page(page_id: str = "page-1", **parent: str) -> dict:
    return {
        "object": "page",
        "id": page_id,
        "parent": parent or {"type": "data_source_id", "data_source_id": "ds-1"},
        "archived": False,
        "properties": {},
    }


class _Recorder:
    """Transport handler returning queued responses and keeping the requests."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def _client(handler: _Recorder) -> NotionClient:
    return NotionClient(
        "secret_abc",
        api_url="https://api.notion.test/v1/",
        max_retries=2,
        retry_base_delay=0,
        retry_max_delay=0,
        transport=httpx.MockTransport(handler),
    )


class TestNotionClient(unittest.IsolatedAsyncioTestCase):
    async def test_retrieve_page_sends_auth_and_version(self):
        handler = _Recorder(httpx.Response(200, json=_page()))

        async with _client(handler) as client:
            page = await client.retrieve_page("page-1")

        request = handler.requests[0]
        assert request.method == "GET"
        assert str(request.url) == "https://api.notion.test/v1/pages/page-1"
        assert request.headers["Authorization"] == "Bearer secret_abc"
        assert request.headers["Notion-Version"] == "2025-09-03"
        assert page.id == "page-1"
        assert page.parent.data_source_id == "ds-1"

    async def test_missing_page_raises_not_found(self):
        handler = _Recorder(
            httpx.Response(
                404,
                json={"object": "error", "status": 404, "code": "object_not_found", "message": "x"},
            )
        )

        async with _client(handler) as client:
            with self.assertRaises(NotionNotFoundError) as ctx:
                await client.retrieve_page("gone")

        assert ctx.exception.status_code == 404
        assert ctx.exception.code == "object_not_found"
        assert len(handler.requests) == 1

    async def test_reads_retry_on_rate_limit(self):
        handler = _Recorder(
            httpx.Response(429, headers={"Retry-After": "0"}, json={"code": "rate_limited"}),
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, json=_page()),
        )

        async with _client(handler) as client:
            page = await client.retrieve_page("page-1")

        assert page.id == "page-1"
        assert len(handler.requests) == 3

    async def test_reads_give_up_after_max_retries(self):
        handler = _Recorder(*(httpx.Response(502, text="bad gateway") for _ in range(3)))

        async with _client(handler) as client:
            with self.assertRaises(NotionAPIError) as ctx:
                await client.retrieve_page("page-1")

        assert ctx.exception.status_code == 502
        assert len(handler.requests) == 3

    async def test_writes_are_not_retried(self):
        handler = _Recorder(httpx.Response(500, json={"code": "internal_server_error"}))

        async with _client(handler) as client:
            with self.assertRaises(NotionAPIError):
                await client.create_page(
                    parent={"data_source_id": "ds-1"}, properties={}, children=[]
                )

        assert len(handler.requests) == 1

    async def test_create_page_payload(self):
        handler = _Recorder(httpx.Response(200, json=_page("new")))
        cover = {"type": "external", "external": {"url": "https://cdn.example/c.jpg"}}

        async with _client(handler) as client:
            page = await client.create_page(
                parent={"data_source_id": "ds-1"},
                properties={"App ID": {"number": 1}},
                children=[{"type": "callout"}],
                cover=cover,
            )

        body = json.loads(handler.requests[0].content)
        assert page.id == "new"
        assert body == {
            "parent": {"data_source_id": "ds-1"},
            "properties": {"App ID": {"number": 1}},
            "children": [{"type": "callout"}],
            "cover": cover,
        }

    async def test_update_page_omits_children(self):
        handler = _Recorder(httpx.Response(200, json=_page()))

        async with _client(handler) as client:
            await client.update_page("page-1", properties={"Playtime": {"number": 2.5}})

        request = handler.requests[0]
        assert request.method == "PATCH"
        assert json.loads(request.content) == {"properties": {"Playtime": {"number": 2.5}}}

    async def test_find_page_queries_data_source(self):
        handler = _Recorder(
            httpx.Response(200, json={"results": [_page("hit")], "has_more": False})
        )

        async with _client(handler) as client:
            page_id = await client.find_page_id_by_number(
                database_id="db-1", data_source_id="ds-1", property_name="App ID", value=440
            )

        request = handler.requests[0]
        assert request.url.path == "/v1/data_sources/ds-1/query"
        assert json.loads(request.content) == {
            "page_size": 1,
            "filter": {"property": "App ID", "number": {"equals": 440}},
        }
        assert page_id == "hit"

    async def test_find_page_falls_back_to_database_query(self):
        handler = _Recorder(httpx.Response(200, json={"results": []}))

        async with _client(handler) as client:
            page_id = await client.find_page_id_by_number(
                database_id="db-1", data_source_id=None, property_name="App ID", value=1
            )

        assert handler.requests[0].url.path == "/v1/databases/db-1/query"
        assert page_id is None

    async def test_create_database_uses_initial_data_source(self):
        handler = _Recorder(
            httpx.Response(200, json={"id": "db-new", "data_sources": [{"id": "ds-new"}]})
        )

        async with _client(handler) as client:
            database = await client.create_database(
                parent_page_id="root", title="Library", properties={"Name": {"title": {}}}
            )

        body = json.loads(handler.requests[0].content)
        assert body["parent"] == {"type": "page_id", "page_id": "root"}
        assert body["initial_data_source"] == {"properties": {"Name": {"title": {}}}}
        assert database.first_data_source_id == "ds-new"

    async def test_update_collection_properties_prefers_data_source(self):
        handler = _Recorder(httpx.Response(200, json={}), httpx.Response(200, json={}))

        async with _client(handler) as client:
            await client.update_collection_properties(
                database_id="db-1", data_source_id="ds-1", properties={}
            )
            await client.update_collection_properties(
                database_id="db-1", data_source_id=None, properties={}
            )

        assert [r.url.path for r in handler.requests] == [
            "/v1/data_sources/ds-1",
            "/v1/databases/db-1",
        ]

    async def test_use_outside_context_raises(self):
        client = _client(_Recorder())
        with self.assertRaises(NotionClientError):
            await client.retrieve_page("page-1")

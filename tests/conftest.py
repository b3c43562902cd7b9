"""Shared test fixtures for the larkify test suite.

:class:`FakeLark` is an in-memory stand-in for the docx endpoints, served
through :class:`httpx.MockTransport` so that the real transport, envelope
parsing and endpoint wrappers are exercised end to end.
"""

from __future__ import annotations

import itertools
import json
from collections import deque
from typing import Any

import httpx
import pytest

from larkify.async_client import AsyncLarkifyClient
from larkify.config import LarkifyConfig
from larkify.lark_api.transport import AsyncLarkTransport

API_PREFIX = "/open-apis"
DOC_ID = "doxcnTestDocument"


class _ImmediateBucket:
    """Token bucket replacement that never waits."""

    async def acquire(self, tokens: int = 1) -> float:
        return 0.0


class FakeLark:
    """In-memory docx tenant.

    Attributes
    ----------
    blocks:
        ``block_id -> block`` for every stored block.  The page block of a
        document has ``block_id == document_id``.
    calls:
        ``(method, path, json_body)`` for every request received.
    convert_response:
        Envelope returned by the convert endpoint.
    create_failures:
        Envelopes returned, in order, by the next create-children calls
        instead of creating anything.
    reject_block_types:
        Block types that make any create-children call containing them fail
        with a non-retryable code.
    table_cell_override:
        When set, the number of cells generated for a created table.
    """

    def __init__(self) -> None:
        self.blocks: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.convert_response: dict[str, Any] = {"code": 0, "msg": "success", "data": {"blocks": []}}
        self.create_failures: deque[dict[str, Any]] = deque()
        self.reject_block_types: set[int] = set()
        self.table_cell_override: int | None = None
        self.upload_response: dict[str, Any] | None = None
        self.raw_content = ""
        self._ids = itertools.count(1)
        self.add_document(DOC_ID)

    # -- state helpers -----------------------------------------------------

    def add_document(self, document_id: str, title: str = "Untitled") -> None:
        self.blocks[document_id] = {
            "block_id": document_id,
            "block_type": 1,
            "parent_id": "",
            "children": [],
            "page": {"elements": [{"text_run": {"content": title}}]},
        }

    def add_block(self, parent_id: str, block: dict[str, Any]) -> dict[str, Any]:
        stored = dict(block)
        stored.setdefault("block_id", f"blk{next(self._ids)}")
        stored["parent_id"] = parent_id
        stored.setdefault("children", [])
        self.blocks[stored["block_id"]] = stored
        self.blocks[parent_id]["children"].append(stored["block_id"])
        return stored

    def children_of(self, parent_id: str) -> list[dict[str, Any]]:
        return [self.blocks[cid] for cid in self.blocks[parent_id]["children"]]

    def create_calls(self) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] == "POST" and c[1].endswith("/children")]

    # -- routing -----------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len(API_PREFIX):]
        body: Any = None
        if request.headers.get("content-type", "").startswith("application/json"):
            body = json.loads(request.content or b"null")
        self.calls.append((request.method, path, body))

        parts = path.strip("/").split("/")
        if path == "/docx/v1/documents/blocks/convert":
            return self._json(self.convert_response)
        if path == "/docx/v1/documents" and request.method == "POST":
            return self._create_document(body)
        if path == "/drive/v1/medias/upload_all":
            return self._json(
                self.upload_response
                or {"code": 0, "msg": "success", "data": {"file_token": f"box{next(self._ids)}"}}
            )
        if parts[:3] == ["docx", "v1", "documents"]:
            return self._document_route(request, parts[3:], body)
        return self._json({"code": 404, "msg": f"no route for {path}"}, status=404)

    def _document_route(
        self, request: httpx.Request, parts: list[str], body: Any
    ) -> httpx.Response:
        document_id = parts[0]
        rest = parts[1:]
        method = request.method

        if rest == [] and method == "GET":
            return self._ok({"document": {"document_id": document_id, "title": "Fake", "revision_id": 7}})
        if rest == ["raw_content"]:
            return self._ok({"content": self.raw_content})
        if rest == ["blocks"]:
            return self._list(document_id, request)
        if len(rest) == 2 and method == "GET":
            block = self.blocks.get(rest[1])
            if block is None:
                return self._json({"code": 1770002, "msg": "not found"})
            return self._ok({"block": block})
        if len(rest) == 2 and method == "PATCH":
            if rest[1] not in self.blocks:
                return self._json({"code": 1770002, "msg": "not found"})
            self.blocks[rest[1]].setdefault("patches", []).append(body)
            return self._ok({"block": self.blocks[rest[1]]})
        if len(rest) == 3 and rest[2] == "children" and method == "GET":
            return self._ok({"items": self.children_of(rest[1]), "has_more": False})
        if len(rest) == 3 and rest[2] == "children" and method == "POST":
            return self._create_children(rest[1], body["children"])
        if len(rest) == 4 and rest[3] == "batch_delete":
            parent = self.blocks[rest[1]]
            removed = parent["children"][body["start_index"]:body["end_index"]]
            del parent["children"][body["start_index"]:body["end_index"]]
            for bid in removed:
                self.blocks.pop(bid, None)
            return self._ok({"document_revision_id": 2})
        return self._json({"code": 404, "msg": "no route"}, status=404)

    def _list(self, document_id: str, request: httpx.Request) -> httpx.Response:
        ordered: list[dict[str, Any]] = []

        def walk(block_id: str) -> None:
            block = self.blocks[block_id]
            ordered.append(block)
            for cid in block["children"]:
                walk(cid)

        walk(document_id)
        return self._ok({"items": ordered, "has_more": False})

    def _create_document(self, body: dict[str, Any]) -> httpx.Response:
        document_id = f"doxcn{next(self._ids)}"
        self.add_document(document_id, body.get("title", ""))
        return self._ok({"document": {"document_id": document_id, "title": body.get("title"), "revision_id": 1}})

    def _create_children(self, parent_id: str, children: list[dict[str, Any]]) -> httpx.Response:
        if self.create_failures:
            return self._json(self.create_failures.popleft())
        if any(c.get("block_type") in self.reject_block_types for c in children):
            return self._json({"code": 1770001, "msg": "invalid param"})

        created = []
        for child in children:
            stored = self.add_block(parent_id, child)
            if stored.get("block_type") == 31:
                prop = (stored.get("table") or {}).get("property") or {}
                count = self.table_cell_override
                if count is None:
                    count = prop.get("row_size", 1) * prop.get("column_size", 1)
                cells = [
                    self.add_block(stored["block_id"], {"block_type": 32, "table_cell": {}})["block_id"]
                    for _ in range(count)
                ]
                stored["table"] = {"cells": cells, "property": prop}
            created.append(stored)
        return self._ok({"children": created})

    @staticmethod
    def _ok(data: dict[str, Any]) -> httpx.Response:
        return FakeLark._json({"code": 0, "msg": "success", "data": data})

    @staticmethod
    def _json(payload: dict[str, Any], status: int = 200) -> httpx.Response:
        return httpx.Response(status, json=payload)


class FakeFetcher:
    """Media fetcher returning canned bytes; URLs in ``failing`` raise."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.requested: list[tuple[str, int]] = []

    async def fetch(self, url: str, max_bytes: int) -> bytes:
        from larkify.errors import LarkifyImageSizeError

        self.requested.append((url, max_bytes))
        if url in self.failing:
            raise LarkifyImageSizeError(
                message=f"Image at {url} exceeds {max_bytes} bytes",
                context={"url": url, "max_bytes": max_bytes},
            )
        return b"\x89PNG fake"


# ---------------------------------------------------------------------------
# Converted-block builders
# ---------------------------------------------------------------------------

def text_block(block_id: str, content: str = "text", children: list[str] | None = None) -> dict:
    return {
        "block_id": block_id,
        "block_type": 2,
        "parent_id": "",
        "children": children or [],
        "text": {"elements": [{"text_run": {"content": content}}]},
    }


def bullet_block(block_id: str, content: str, children: list[str] | None = None) -> dict:
    return {
        "block_id": block_id,
        "block_type": 12,
        "children": children or [],
        "bullet": {"elements": [{"text_run": {"content": content}}]},
    }


def image_block(block_id: str) -> dict:
    return {"block_id": block_id, "block_type": 27, "image": {}}


def table_blocks(table_id: str, rows: int, cols: int, texts: list[str]) -> list[dict]:
    """A converted table plus its cells and one text child per cell."""
    cell_ids = [f"{table_id}_c{i}" for i in range(rows * cols)]
    blocks: list[dict] = [
        {
            "block_id": table_id,
            "block_type": 31,
            "children": cell_ids,
            "table": {
                "cells": cell_ids,
                "property": {
                    "row_size": rows,
                    "column_size": cols,
                    "merge_info": [{"row_span": 1, "col_span": 1}] * (rows * cols),
                },
            },
        }
    ]
    for cid, content in zip(cell_ids, texts):
        child_id = f"{cid}_t"
        blocks.append({"block_id": cid, "block_type": 32, "children": [child_id], "table_cell": {}})
        blocks.append(text_block(child_id, content))
    return blocks


def convert_envelope(blocks: list[dict], first_level: list[str] | None) -> dict:
    data: dict[str, Any] = {"blocks": blocks}
    if first_level is not None:
        data["first_level_block_ids"] = first_level
    return {"code": 0, "msg": "success", "data": data}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _wire(transport: AsyncLarkTransport, lark: FakeLark) -> None:
    """Route *transport* through *lark* and disable pacing."""
    config = transport._config
    transport._client = httpx.AsyncClient(
        base_url=config.base_url,
        headers={"Authorization": f"Bearer {config.token}"},
        transport=httpx.MockTransport(lark.handler),
    )
    transport._bucket = _ImmediateBucket()


@pytest.fixture
def config() -> LarkifyConfig:
    """Default test configuration with a dummy token and no backoff delay."""
    return LarkifyConfig(
        token="t-test_token_1234",
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        rate_limit_rps=10_000.0,
    )


@pytest.fixture
def lark() -> FakeLark:
    return FakeLark()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
async def transport(lark: FakeLark, config: LarkifyConfig):
    """An :class:`AsyncLarkTransport` wired to :class:`FakeLark`."""
    t = AsyncLarkTransport(config)
    await t._client.aclose()
    _wire(t, lark)
    yield t
    await t.close()


@pytest.fixture
async def client(lark: FakeLark, fetcher: FakeFetcher):
    """An :class:`AsyncLarkifyClient` wired to :class:`FakeLark`."""
    c = AsyncLarkifyClient(
        token="t-test_token_1234",
        media_fetcher=fetcher,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
    )
    await c._transport._client.aclose()
    _wire(c._transport, lark)
    yield c
    await c.close()

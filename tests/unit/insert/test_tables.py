"""Tests for TableReconciler: cell content copy and nested insertion."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from larkify.converter.ordering import build_block_map
from larkify.insert.batch import BlockInserter
from larkify.insert.tables import TABLE_CELLS_MISSING, TABLE_NOT_RETURNED, TableReconciler
from larkify.lark_api.blocks import AsyncBlockAPI
from larkify.models import InsertResult

from conftest import DOC_ID, bullet_block, table_blocks, text_block


@pytest.fixture
def reconciler(transport, config) -> TableReconciler:
    return TableReconciler(BlockInserter(AsyncBlockAPI(transport), config))


def _content(block: dict) -> str:
    payload = block.get("text") or block.get("bullet") or {}
    return payload["elements"][0]["text_run"]["content"]


def _cell_texts(lark, table_id: str) -> list[list[str]]:
    return [
        [_content(child) for child in lark.children_of(cell_id)]
        for cell_id in lark.blocks[table_id]["table"]["cells"]
    ]


class TestInsertTableWithCells:
    async def test_copies_cell_content_by_position(self, reconciler, lark):
        blocks = table_blocks("tbl", 2, 2, ["a", "b", "c", "d"])
        result = await reconciler.insert_table_with_cells(DOC_ID, blocks[0], build_block_map(blocks))

        created_table = result.children[0]
        assert created_table["block_type"] == 31
        assert len(result.children) == 1 + 4
        assert result.warnings == []
        assert _cell_texts(lark, created_table["block_id"]) == [["a"], ["b"], ["c"], ["d"]]

    async def test_table_sent_without_cells_or_merge_info(self, reconciler, lark):
        blocks = table_blocks("tbl", 1, 2, ["x", "y"])
        await reconciler.insert_table_with_cells(DOC_ID, blocks[0], build_block_map(blocks))
        sent = lark.create_calls()[0][2]["children"][0]
        assert sent == {"block_type": 31, "table": {"property": {"row_size": 1, "column_size": 2}}}

    async def test_cell_count_mismatch_warns(self, reconciler, lark):
        lark.table_cell_override = 4
        blocks = table_blocks("tbl", 2, 3, ["1", "2", "3", "4", "5", "6"])
        result = await reconciler.insert_table_with_cells(DOC_ID, blocks[0], build_block_map(blocks))

        assert result.warnings == [
            "Table cell count mismatch after create (source=6, target=4); "
            "content may be partially copied."
        ]
        table_id = result.children[0]["block_id"]
        assert _cell_texts(lark, table_id) == [["1"], ["2"], ["3"], ["4"]]

    async def test_missing_generated_cells_warns(self, reconciler, lark):
        lark.table_cell_override = 0
        blocks = table_blocks("tbl", 1, 1, ["a"])
        result = await reconciler.insert_table_with_cells(DOC_ID, blocks[0], build_block_map(blocks))
        assert result.warnings == [TABLE_CELLS_MISSING]
        assert len(result.children) == 1

    async def test_table_not_returned_warns(self):
        inserter = MagicMock()
        inserter.insert_blocks = AsyncMock(return_value=InsertResult())
        blocks = table_blocks("tbl", 1, 1, ["a"])
        result = await TableReconciler(inserter).insert_table_with_cells(
            DOC_ID, blocks[0], build_block_map(blocks)
        )
        assert result.warnings == [TABLE_NOT_RETURNED]
        assert result.children == []

    async def test_source_without_cells_copies_nothing(self, reconciler, lark):
        table = {"block_id": "t", "block_type": 31, "table": {"property": {"row_size": 1, "column_size": 1}}}
        result = await reconciler.insert_table_with_cells(DOC_ID, table, {})
        assert len(result.children) == 1
        assert result.warnings == []
        assert len(lark.create_calls()) == 1

    async def test_empty_cells_are_not_counted(self, reconciler, lark):
        blocks = table_blocks("tbl", 1, 3, ["only"])
        result = await reconciler.insert_table_with_cells(DOC_ID, blocks[0], build_block_map(blocks))
        assert result.warnings == []
        assert len(lark.create_calls()) == 2

    async def test_inline_cell_text_fallback(self, reconciler, lark):
        table = {
            "block_id": "tbl",
            "block_type": 31,
            "table": {"cells": ["c0"], "property": {"row_size": 1, "column_size": 1}},
        }
        cell = {
            "block_id": "c0",
            "block_type": 32,
            "table_cell": {"text": {"elements": [{"text_run": {"content": "inline"}}]}},
        }
        result = await reconciler.insert_table_with_cells(DOC_ID, table, build_block_map([table, cell]))
        assert _cell_texts(lark, result.children[0]["block_id"]) == [["inline"]]

    async def test_partial_copy_reported(self, reconciler, lark):
        lark.reject_block_types = {2}
        blocks = table_blocks("tbl", 1, 2, ["a", "b"])
        result = await reconciler.insert_table_with_cells(DOC_ID, blocks[0], build_block_map(blocks))
        assert "Copied table cell content for 0/2 non-empty cells." in result.warnings
        assert len(result.children) == 1


class TestInsertPreservingTables:
    async def test_order_around_tables(self, reconciler, lark):
        table = table_blocks("tbl", 1, 1, ["cell"])
        blocks = [text_block("p1", "before"), *table, text_block("p2", "after")]
        block_map = build_block_map(blocks)
        top = [block_map["p1"], block_map["tbl"], block_map["p2"]]

        result = await reconciler.insert_preserving_tables(DOC_ID, top, block_map)

        root = lark.children_of(DOC_ID)
        assert [b["block_type"] for b in root] == [2, 31, 2]
        assert _content(root[0]) == "before"
        assert _content(root[2]) == "after"
        assert [b["block_type"] for b in result.children] == [2, 31, 2, 2]

    async def test_nested_children_inserted_under_created_parent(self, reconciler, lark):
        blocks = [
            bullet_block("b1", "parent", children=["b2"]),
            bullet_block("b2", "child", children=["b3"]),
            bullet_block("b3", "grandchild"),
            bullet_block("b4", "sibling"),
        ]
        block_map = build_block_map(blocks)
        result = await reconciler.insert_preserving_tables(
            DOC_ID, [block_map["b1"], block_map["b4"]], block_map
        )

        root = lark.children_of(DOC_ID)
        assert [_content(b) for b in root] == ["parent", "sibling"]
        child = lark.children_of(root[0]["block_id"])
        assert [_content(b) for b in child] == ["child"]
        assert [_content(b) for b in lark.children_of(child[0]["block_id"])] == ["grandchild"]
        assert [_content(b) for b in result.children] == ["parent", "child", "grandchild", "sibling"]

    async def test_descend_disabled(self, reconciler, lark):
        blocks = [bullet_block("b1", "parent", children=["b2"]), bullet_block("b2", "child")]
        block_map = build_block_map(blocks)
        result = await reconciler.insert_preserving_tables(DOC_ID, blocks, block_map, descend=False)
        assert [_content(b) for b in lark.children_of(DOC_ID)] == ["parent", "child"]
        assert len(result.children) == 2

    async def test_warnings_deduplicated(self, reconciler, lark):
        lark.table_cell_override = 0
        t1 = table_blocks("t1", 1, 1, ["a"])
        t2 = table_blocks("t2", 1, 1, ["b"])
        block_map = build_block_map(t1 + t2)
        result = await reconciler.insert_preserving_tables(DOC_ID, [t1[0], t2[0]], block_map)
        assert result.warnings == [TABLE_CELLS_MISSING]

"""Tests for sanitize_blocks and is_creatable."""

from __future__ import annotations

import copy

from larkify.converter.sanitize import UNSUPPORTED_CREATE_TYPES, is_creatable, sanitize_blocks
from larkify.models import BlockType

from conftest import table_blocks, text_block


class TestIsCreatable:
    def test_text_is_creatable(self):
        assert is_creatable({"block_type": BlockType.TEXT})

    def test_table_cell_is_not(self):
        assert not is_creatable({"block_type": 32})

    def test_unsupported_set_contents(self):
        assert UNSUPPORTED_CREATE_TYPES == {BlockType.TABLE_CELL}


class TestSanitizeBlocks:
    def test_strips_read_only_fields(self):
        block = text_block("tmp1", "hello", children=["x"])
        block["parent_id"] = "root"
        result = sanitize_blocks([block])
        assert result.blocks == [
            {"block_type": 2, "text": {"elements": [{"text_run": {"content": "hello"}}]}}
        ]
        assert result.skipped == []

    def test_input_is_not_mutated(self):
        blocks = table_blocks("tbl", 1, 2, ["a", "b"])
        before = copy.deepcopy(blocks)
        sanitize_blocks(blocks)
        assert blocks == before

    def test_table_keeps_property_without_merge_info(self):
        table = table_blocks("tbl", 2, 3, [])[0]
        result = sanitize_blocks([table])
        assert result.blocks == [
            {"block_type": 31, "table": {"property": {"row_size": 2, "column_size": 3}}}
        ]

    def test_table_cells_are_skipped_and_named_once(self):
        blocks = [text_block("t1"), {"block_type": 32, "block_id": "c1"}, {"block_type": 32, "block_id": "c2"}]
        result = sanitize_blocks(blocks)
        assert [b["block_type"] for b in result.blocks] == [2]
        assert result.skipped == ["TableCell"]

    def test_order_preserved(self):
        blocks = [text_block("a", "1"), {"block_type": 22, "block_id": "d"}, text_block("b", "2")]
        result = sanitize_blocks(blocks)
        assert [b["block_type"] for b in result.blocks] == [2, 22, 2]

    def test_empty_input(self):
        result = sanitize_blocks([])
        assert result.blocks == []
        assert result.skipped == []

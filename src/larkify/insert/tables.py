"""Table-aware insertion.

A table cannot be created together with its content.  The create call
returns the table with freshly generated, empty cells; the source cells'
content is then copied into them by position.  Everything around tables
is buffered and inserted in batches so that document order is kept.

Nested content (list items under a list item, blocks inside a quote
container or a callout) is inserted under the block created from its
parent, depth first, so the output list stays in document order.
"""

from __future__ import annotations

from typing import Any

from larkify.converter.ordering import child_blocks
from larkify.models import BlockType, ReconciliationResult

from .batch import BlockInserter

TABLE_NOT_RETURNED = "Table block was not returned after create; skipped table cell content."
TABLE_CELLS_MISSING = (
    "Table created but API did not return generated cells; table content may be empty."
)


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _cell_content(
    cell: dict[str, Any] | None,
    block_map: dict[str, dict[str, Any]],
) -> list[dict[str, Any]]:
    """Resolve the blocks to copy into one destination cell."""
    if not cell:
        return []
    content = child_blocks(cell, block_map)
    if content:
        return content
    # Some conversions put the cell text inline instead of in child blocks.
    for text in (cell.get("text"), (cell.get("table_cell") or {}).get("text")):
        if text and text.get("elements"):
            return [{"block_type": BlockType.TEXT, "text": text}]
    return []


class TableReconciler:
    """Insert block sequences that may contain tables.

    Parameters
    ----------
    inserter:
        The batch engine used for every create call.
    """

    def __init__(self, inserter: BlockInserter) -> None:
        self._inserter = inserter

    async def insert_table_with_cells(
        self,
        document_id: str,
        table_block: dict[str, Any],
        block_map: dict[str, dict[str, Any]],
        parent_id: str | None = None,
    ) -> ReconciliationResult:
        """Create *table_block* and copy its cell content into the new cells.

        Parameters
        ----------
        document_id:
            Target document.
        table_block:
            Source table, with provisional cell ids under ``table.cells``.
        block_map:
            Provisional id lookup for cells and their content.
        parent_id:
            Parent block id.  Defaults to the document root.

        Returns
        -------
        ReconciliationResult
            The created table followed by every copied content block.
            Partial copies are reported in ``warnings``, never raised.
        """
        table_insert = await self._inserter.insert_blocks(document_id, [table_block], parent_id)
        created = table_insert.children[0] if table_insert.children else None

        if not created or created.get("block_type") != BlockType.TABLE:
            return ReconciliationResult(
                children=table_insert.children,
                skipped=table_insert.skipped,
                warnings=[TABLE_NOT_RETURNED],
            )

        src_cells: list[str] = (table_block.get("table") or {}).get("cells") or []
        dst_cells: list[str] = (created.get("table") or {}).get("cells") or []
        if not src_cells:
            return ReconciliationResult(
                children=table_insert.children,
                skipped=table_insert.skipped,
            )
        if not dst_cells:
            return ReconciliationResult(
                children=table_insert.children,
                skipped=table_insert.skipped,
                warnings=[TABLE_CELLS_MISSING],
            )

        children = list(table_insert.children)
        skipped = list(table_insert.skipped)
        warnings: list[str] = []
        cells_with_content = 0
        cells_copied = 0

        for src_id, dst_id in zip(src_cells, dst_cells):
            content = _cell_content(block_map.get(src_id), block_map)
            if not content:
                continue
            cells_with_content += 1

            cell_insert = await self.insert_preserving_tables(
                document_id, content, block_map, parent_id=dst_id
            )
            children.extend(cell_insert.children)
            skipped.extend(cell_insert.skipped)
            warnings.extend(cell_insert.warnings)
            if cell_insert.children:
                cells_copied += 1

        if len(src_cells) != len(dst_cells):
            warnings.append(
                f"Table cell count mismatch after create (source={len(src_cells)}, "
                f"target={len(dst_cells)}); content may be partially copied."
            )
        if cells_with_content and cells_copied < cells_with_content:
            warnings.append(
                f"Copied table cell content for {cells_copied}/{cells_with_content} non-empty cells."
            )

        return ReconciliationResult(
            children=children,
            skipped=_unique(skipped),
            warnings=_unique(warnings),
        )

    async def insert_preserving_tables(
        self,
        document_id: str,
        blocks: list[dict[str, Any]],
        block_map: dict[str, dict[str, Any]],
        parent_id: str | None = None,
        descend: bool = True,
    ) -> ReconciliationResult:
        """Insert *blocks* in order, routing each table through
        :meth:`insert_table_with_cells`.

        Non-table blocks are buffered and flushed through
        :meth:`BlockInserter.insert_in_batches` before each table and at
        the end.  With *descend*, the children of every created block are
        looked up in *block_map* and inserted under it.

        Returns
        -------
        ReconciliationResult
            Created blocks in document order with de-duplicated skipped
            names and warnings.
        """
        result = ReconciliationResult()
        buffer: list[dict[str, Any]] = []

        async def flush() -> None:
            if not buffer:
                return
            inserted = await self._inserter.insert_in_batches(document_id, buffer, parent_id)
            result.skipped.extend(inserted.skipped)
            for created, source in zip(inserted.children, inserted.sources):
                result.children.append(created)
                if descend:
                    await self._descend(document_id, created, source, block_map, result)
            buffer.clear()

        for block in blocks:
            if block.get("block_type") == BlockType.TABLE:
                await flush()
                table = await self.insert_table_with_cells(
                    document_id, block, block_map, parent_id
                )
                result.children.extend(table.children)
                result.skipped.extend(table.skipped)
                result.warnings.extend(table.warnings)
                continue
            buffer.append(block)

        await flush()

        result.skipped = _unique(result.skipped)
        result.warnings = _unique(result.warnings)
        return result

    async def _descend(
        self,
        document_id: str,
        created: dict[str, Any],
        source: dict[str, Any],
        block_map: dict[str, dict[str, Any]],
        result: ReconciliationResult,
    ) -> None:
        nested = child_blocks(source, block_map) if source else []
        created_id = created.get("block_id")
        if not nested or not created_id:
            return
        sub = await self.insert_preserving_tables(
            document_id, nested, block_map, parent_id=created_id
        )
        result.children.extend(sub.children)
        result.skipped.extend(sub.skipped)
        result.warnings.extend(sub.warnings)

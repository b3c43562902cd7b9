"""Top-level ordering of converted blocks.

The convert endpoint returns every block of every depth in a flat,
unordered list.  ``first_level_block_ids`` is the only trustworthy source
of document order for the root's children.
"""

from __future__ import annotations

from typing import Any


def build_block_map(blocks: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Index *blocks* by their provisional ``block_id``.

    Blocks without an id are left out.  Later duplicates win.
    """
    return {block["block_id"]: block for block in blocks if block.get("block_id")}


def reorder_blocks(
    blocks: list[dict[str, Any]],
    first_level_block_ids: list[str] | None,
) -> list[dict[str, Any]]:
    """Return the top-level blocks in document order.

    Parameters
    ----------
    blocks:
        The flat collection returned by the converter.
    first_level_block_ids:
        Provisional ids of the root's children, in order.

    Returns
    -------
    list[dict]
        The blocks named by *first_level_block_ids* that exist in *blocks*,
        in that order.  Unknown ids are dropped.  When the order is empty,
        or none of its ids resolve, *blocks* is returned unchanged so that
        content is never silently lost.
    """
    if not first_level_block_ids:
        return blocks

    block_map = build_block_map(blocks)
    ordered = [block_map[bid] for bid in first_level_block_ids if bid in block_map]
    return ordered if ordered else blocks


def child_blocks(
    block: dict[str, Any],
    block_map: dict[str, dict[str, Any]],
) -> list[dict[str, Any]]:
    """Resolve the ``children`` ids of *block* against *block_map*, keeping order."""
    return [block_map[cid] for cid in block.get("children") or [] if cid in block_map]

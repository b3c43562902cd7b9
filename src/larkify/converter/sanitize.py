"""Prepare converted blocks for the create-children endpoint.

Converted blocks carry read-only fields the create endpoint rejects:
provisional ids, parent links, child id lists and, for tables, the
generated cell ids and merge metadata.  Table cells cannot be created
directly at all; the API generates them together with their table.
"""

from __future__ import annotations

from typing import Any

from larkify.models import BlockType, SanitizeResult, block_type_name

UNSUPPORTED_CREATE_TYPES: frozenset[int] = frozenset({BlockType.TABLE_CELL})

_READ_ONLY_KEYS = ("block_id", "parent_id", "children")


def is_creatable(block: dict[str, Any]) -> bool:
    """Return ``True`` if *block* may be sent to create-children."""
    return block.get("block_type") not in UNSUPPORTED_CREATE_TYPES


def _clean(block: dict[str, Any]) -> dict[str, Any]:
    cleaned = {k: v for k, v in block.items() if k not in _READ_ONLY_KEYS}
    if cleaned.get("block_type") == BlockType.TABLE and cleaned.get("table"):
        prop = dict(cleaned["table"].get("property") or {})
        prop.pop("merge_info", None)
        cleaned["table"] = {"property": prop}
    return cleaned


def sanitize_blocks(blocks: list[dict[str, Any]]) -> SanitizeResult:
    """Drop uncreatable blocks and strip read-only fields from the rest.

    Parameters
    ----------
    blocks:
        Source blocks.  Never mutated.

    Returns
    -------
    SanitizeResult
        ``blocks`` holds shallow copies of the creatable inputs, in input
        order.  ``skipped`` holds the display names of dropped types,
        de-duplicated in first-seen order.
    """
    cleaned: list[dict[str, Any]] = []
    skipped: list[str] = []
    for block in blocks:
        if not is_creatable(block):
            name = block_type_name(block.get("block_type"))
            if name not in skipped:
                skipped.append(name)
            continue
        cleaned.append(_clean(block))
    return SanitizeResult(blocks=cleaned, skipped=skipped)

"""Markdown conversion and block preparation.

* :class:`MarkdownConverter` -- remote markdown to block conversion.
* :func:`reorder_blocks` / :func:`build_block_map` -- restore top-level order.
* :func:`sanitize_blocks` -- strip read-only fields and uncreatable types.
"""

from __future__ import annotations

from .ordering import build_block_map, child_blocks, reorder_blocks
from .remote import MarkdownConverter
from .sanitize import UNSUPPORTED_CREATE_TYPES, is_creatable, sanitize_blocks

__all__ = [
    "UNSUPPORTED_CREATE_TYPES",
    "MarkdownConverter",
    "build_block_map",
    "child_blocks",
    "is_creatable",
    "reorder_blocks",
    "sanitize_blocks",
]

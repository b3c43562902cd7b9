"""Shared helpers: batching, per-document locks and payload redaction."""

from __future__ import annotations

from .chunk import chunk_blocks
from .locks import KeyedLock
from .redact import redact

__all__ = [
    "KeyedLock",
    "chunk_blocks",
    "redact",
]

"""Block insertion engine: batching, retry, degradation and table handling."""

from __future__ import annotations

from .batch import BlockInserter
from .tables import TableReconciler

__all__ = ["BlockInserter", "TableReconciler"]

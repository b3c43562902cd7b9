"""Split a block list into create-children sized batches."""

from __future__ import annotations

from typing import Any


def chunk_blocks(blocks: list[dict[str, Any]], size: int = 50) -> list[list[dict[str, Any]]]:
    """Split *blocks* into consecutive sublists of at most ``size`` items.

    Parameters
    ----------
    blocks:
        Blocks in document order.
    size:
        Maximum number of blocks per batch.  Defaults to **50**, the
        create-children limit.

    Returns
    -------
    list[list[dict]]
        Batches in input order.  An empty input returns ``[]``.

    Raises
    ------
    ValueError
        If *size* is less than 1.

    Examples
    --------
    >>> [len(b) for b in chunk_blocks([{"block_type": 2}] * 120)]
    [50, 50, 20]
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")

    if not blocks:
        return []

    return [blocks[i : i + size] for i in range(0, len(blocks), size)]

"""Public data models for the larkify SDK.

Blocks themselves stay plain ``dict`` objects in the Lark wire format
(``block_type``, ``block_id``, ``parent_id``, ``children`` plus one
type-specific payload key).  This module holds the block type table, the
API response envelope and every result type returned by the client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from larkify.errors import LarkifyRemoteCallError

# ---------------------------------------------------------------------------
# Block types
# ---------------------------------------------------------------------------

class BlockType(IntEnum):
    """Numeric ``block_type`` tags used by the docx block API."""

    PAGE = 1
    TEXT = 2
    HEADING1 = 3
    HEADING2 = 4
    HEADING3 = 5
    HEADING4 = 6
    HEADING5 = 7
    HEADING6 = 8
    HEADING7 = 9
    HEADING8 = 10
    HEADING9 = 11
    BULLET = 12
    ORDERED = 13
    CODE = 14
    QUOTE = 15
    TODO = 17
    BITABLE = 18
    CALLOUT = 19
    DIAGRAM = 21
    DIVIDER = 22
    FILE = 23
    IMAGE = 27
    SHEET = 30
    TABLE = 31
    TABLE_CELL = 32
    QUOTE_CONTAINER = 34


_BLOCK_TYPE_NAMES: dict[int, str] = {
    BlockType.PAGE: "Page",
    BlockType.TEXT: "Text",
    BlockType.HEADING1: "Heading1",
    BlockType.HEADING2: "Heading2",
    BlockType.HEADING3: "Heading3",
    BlockType.HEADING4: "Heading4",
    BlockType.HEADING5: "Heading5",
    BlockType.HEADING6: "Heading6",
    BlockType.HEADING7: "Heading7",
    BlockType.HEADING8: "Heading8",
    BlockType.HEADING9: "Heading9",
    BlockType.BULLET: "Bullet",
    BlockType.ORDERED: "Ordered",
    BlockType.CODE: "Code",
    BlockType.QUOTE: "Quote",
    BlockType.TODO: "Todo",
    BlockType.BITABLE: "Bitable",
    BlockType.CALLOUT: "Callout",
    BlockType.DIAGRAM: "Diagram",
    BlockType.DIVIDER: "Divider",
    BlockType.FILE: "File",
    BlockType.IMAGE: "Image",
    BlockType.SHEET: "Sheet",
    BlockType.TABLE: "Table",
    BlockType.TABLE_CELL: "TableCell",
    BlockType.QUOTE_CONTAINER: "QuoteContainer",
}


def block_type_name(block_type: int | None) -> str:
    """Return the display name for a ``block_type`` tag (``type_<n>`` if unknown)."""
    if block_type is None:
        return "type_unknown"
    return _BLOCK_TYPE_NAMES.get(block_type, f"type_{block_type}")


# ---------------------------------------------------------------------------
# API envelope
# ---------------------------------------------------------------------------

@dataclass
class ApiResponse:
    """The ``{code, msg, data}`` envelope every Lark endpoint returns.

    Attributes
    ----------
    code:
        ``0`` on success.  Non-JSON HTTP failures are surfaced with the
        HTTP status code here so they can be classified the same way.
    msg:
        Remote message, verbatim.
    data:
        Endpoint-specific payload (empty dict when absent).
    """

    code: int
    msg: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.code == 0

    def unwrap(self, operation: str) -> dict[str, Any]:
        """Return :attr:`data`, raising :class:`LarkifyRemoteCallError` on failure."""
        if not self.ok:
            raise LarkifyRemoteCallError(
                message=self.msg or f"{operation} failed with code {self.code}",
                context={
                    "operation": operation,
                    "remote_code": self.code,
                    "remote_msg": self.msg,
                },
            )
        return self.data


# ---------------------------------------------------------------------------
# Pipeline internals
# ---------------------------------------------------------------------------

@dataclass
class ConvertResult:
    """Output of the remote markdown conversion.

    Attributes
    ----------
    blocks:
        Flat block collection keyed by provisional ``block_id``.  Not in
        document order.
    first_level_block_ids:
        Provisional ids of the blocks that belong directly under the
        document root, in document order.
    """

    blocks: list[dict[str, Any]] = field(default_factory=list)
    first_level_block_ids: list[str] = field(default_factory=list)


@dataclass
class SanitizeResult:
    """Blocks ready for the create-children endpoint plus dropped type names."""

    blocks: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass
class InsertResult:
    """Outcome of one or more create-children calls under a single parent.

    Attributes
    ----------
    children:
        Blocks actually created, as returned by the API (with server ids).
    skipped:
        Type names dropped before any call was made.
    sources:
        The source block each entry of :attr:`children` was created from.
        Aligned index-for-index with :attr:`children`.
    """

    children: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    sources: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class ReconciliationResult:
    """:class:`InsertResult` plus the warnings raised by table handling."""

    children: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public result types (returned from client methods)
# ---------------------------------------------------------------------------

@dataclass
class CreateDocResult:
    """Result of :meth:`AsyncLarkifyClient.create_doc`."""

    document_id: str
    title: str | None
    url: str


@dataclass
class WriteResult:
    """Result of :meth:`AsyncLarkifyClient.write_doc`.

    Attributes
    ----------
    blocks_deleted:
        Root children removed before writing.
    blocks_added:
        Blocks created, including nested and table-cell content.
    images_processed:
        Images downloaded, uploaded and attached.
    warning:
        Skipped block types and reconciliation caveats, or ``None``.
    """

    blocks_deleted: int
    blocks_added: int
    images_processed: int
    warning: str | None = None


@dataclass
class AppendResult:
    """Result of :meth:`AsyncLarkifyClient.append_doc`."""

    blocks_added: int
    images_processed: int
    block_ids: list[str] = field(default_factory=list)
    warning: str | None = None


@dataclass
class CreateAndWriteResult:
    """Result of :meth:`AsyncLarkifyClient.create_and_write_doc`.

    Creation and write are two remote steps.  If the write fails the
    document still exists; the error carries ``document_id`` in its
    context.
    """

    document_id: str
    title: str
    url: str
    blocks_deleted: int
    blocks_added: int
    images_processed: int
    warning: str | None = None
    import_method: str = "create_and_write"


@dataclass
class ReadDocResult:
    """Result of :meth:`AsyncLarkifyClient.read_doc`."""

    title: str | None
    content: str | None
    revision_id: int | None
    block_count: int
    block_types: dict[str, int] = field(default_factory=dict)
    hint: str | None = None

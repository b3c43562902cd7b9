"""Asynchronous larkify client.

:class:`AsyncLarkifyClient` writes markdown into Lark/Feishu docx
documents: it converts through the remote convert endpoint, restores
document order, inserts in bounded and retried batches, copies table cell
content, attaches images and reports what actually landed.

Usage::

    import asyncio
    from larkify import AsyncLarkifyClient

    async def main():
        async with AsyncLarkifyClient(token="t-xxx") as client:
            result = await client.create_and_write_doc(
                title="Weekly notes",
                markdown="# Hello\\n\\n- one\\n- two",
            )
            print(result.url, result.blocks_added, result.warning)

    asyncio.run(main())
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from larkify.config import LarkifyConfig
from larkify.converter import MarkdownConverter, build_block_map, reorder_blocks
from larkify.errors import (
    LarkifyConversionError,
    LarkifyError,
    LarkifyNotFoundError,
    LarkifyRemoteCallError,
    LarkifyZeroInsertionError,
)
from larkify.image import HttpMediaFetcher, ImageProcessor, MediaFetcher
from larkify.insert import BlockInserter, TableReconciler
from larkify.lark_api import (
    AsyncBlockAPI,
    AsyncDocumentAPI,
    AsyncLarkTransport,
    AsyncMediaAPI,
)
from larkify.models import (
    AppendResult,
    BlockType,
    ConvertResult,
    CreateAndWriteResult,
    CreateDocResult,
    ReadDocResult,
    ReconciliationResult,
    WriteResult,
    block_type_name,
)
from larkify.observability import get_logger
from larkify.utils.locks import KeyedLock

log = get_logger("larkify.client")

# Block types whose content does not survive the plain-text rendering.
STRUCTURED_BLOCK_TYPES: frozenset[int] = frozenset({
    BlockType.CODE,
    BlockType.BITABLE,
    BlockType.DIAGRAM,
    BlockType.FILE,
    BlockType.IMAGE,
    BlockType.SHEET,
    BlockType.TABLE,
    BlockType.TABLE_CELL,
})


class AsyncLarkifyClient:
    """Asynchronous docx synchronization client.

    Parameters
    ----------
    token:
        Tenant or user access token.  **Required.**
    media_fetcher:
        Source of image bytes.  Defaults to an :class:`HttpMediaFetcher`
        owned (and closed) by this client.
    document_locks:
        Per-document lock shared by writers.  Pass the same
        :class:`KeyedLock` to several clients to serialise them too.
    **kwargs:
        Forwarded to :class:`LarkifyConfig`.
    """

    def __init__(
        self,
        token: str,
        media_fetcher: MediaFetcher | None = None,
        document_locks: KeyedLock | None = None,
        **kwargs: Any,
    ) -> None:
        self._config = LarkifyConfig(token=token, **kwargs)
        self._transport = AsyncLarkTransport(self._config)
        self._documents = AsyncDocumentAPI(self._transport)
        self._blocks = AsyncBlockAPI(self._transport)
        self._media = AsyncMediaAPI(self._transport)

        self._owns_fetcher = media_fetcher is None
        self._fetcher: MediaFetcher = media_fetcher or HttpMediaFetcher(
            timeout_seconds=self._config.timeout_seconds,
            proxy=self._config.http_proxy,
        )
        self._locks = document_locks or KeyedLock()

        self._converter = MarkdownConverter(self._documents, self._config)
        self._inserter = BlockInserter(self._blocks, self._config)
        self._tables = TableReconciler(self._inserter)
        self._images = ImageProcessor(self._media, self._blocks, self._fetcher)

    @property
    def config(self) -> LarkifyConfig:
        return self._config

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------

    async def create_doc(self, title: str, folder_token: str | None = None) -> CreateDocResult:
        """Create an empty document.

        Parameters
        ----------
        title:
            Document title.
        folder_token:
            Optional destination folder.  Defaults to the caller's root.

        Returns
        -------
        CreateDocResult
            ``url`` is built from ``config.doc_url_base``.
        """
        data = (await self._documents.create(title, folder_token)).unwrap("create_document")
        document = data.get("document") or {}
        document_id = document.get("document_id") or ""
        return CreateDocResult(
            document_id=document_id,
            title=document.get("title"),
            url=f"{self._config.doc_url_base}/{document_id}",
        )

    async def clear_document_content(self, document_id: str) -> int:
        """Delete every direct child of the document root.

        Returns
        -------
        int
            Number of root children removed.  No delete call is made when
            the document is already empty.
        """
        blocks = await self._blocks.list_all(document_id)
        child_ids = [
            b.get("block_id")
            for b in blocks
            if b.get("parent_id") == document_id and b.get("block_type") != BlockType.PAGE
        ]
        if child_ids:
            response = await self._blocks.batch_delete(
                document_id, document_id, 0, len(child_ids)
            )
            response.unwrap("batch_delete")
        return len(child_ids)

    # ------------------------------------------------------------------
    # Markdown write paths
    # ------------------------------------------------------------------

    async def write_doc(
        self,
        document_id: str,
        markdown: str,
        max_bytes: int | None = None,
    ) -> WriteResult:
        """Replace the content of a document with *markdown*.

        The document is cleared first.  Whitespace-only markdown leaves it
        empty and reports zero additions.

        Raises
        ------
        LarkifyConversionError
            If conversion fails, or yields no blocks for non-empty input.
        LarkifyZeroInsertionError
            If non-empty input produced no created block.
        LarkifyRemoteCallError
            On listing, deletion or table creation failures.
        """
        async with self._locks.hold(document_id):
            deleted = await self.clear_document_content(document_id)

            conversion = await self._converter.convert(markdown)
            if not conversion.blocks:
                if markdown.strip():
                    raise LarkifyConversionError(
                        "Markdown conversion returned no blocks for non-empty content.",
                        context={"content_length": len(markdown)},
                    )
                return WriteResult(blocks_deleted=deleted, blocks_added=0, images_processed=0)

            inserted = await self._insert_converted(document_id, conversion)
            images = await self._images.process_images(
                document_id, markdown, inserted.children, self._max_bytes(max_bytes)
            )
            _ensure_inserted("write", markdown, inserted)

        log.info(
            "write_doc complete",
            extra={
                "extra_fields": {
                    "op": "write_doc",
                    "document_id": document_id,
                    "blocks_deleted": deleted,
                    "blocks_added": len(inserted.children),
                    "images_processed": images,
                }
            },
        )
        return WriteResult(
            blocks_deleted=deleted,
            blocks_added=len(inserted.children),
            images_processed=images,
            warning=_compose_warning(inserted),
        )

    async def append_doc(
        self,
        document_id: str,
        markdown: str,
        max_bytes: int | None = None,
    ) -> AppendResult:
        """Append *markdown* after the existing content of a document.

        Raises
        ------
        LarkifyConversionError
            ``"Content is empty"`` when conversion yields no blocks.
        LarkifyZeroInsertionError
            If non-empty input produced no created block.
        """
        async with self._locks.hold(document_id):
            conversion = await self._converter.convert(markdown)
            if not conversion.blocks:
                raise LarkifyConversionError(
                    "Content is empty",
                    context={"content_length": len(markdown)},
                )

            inserted = await self._insert_converted(document_id, conversion)
            images = await self._images.process_images(
                document_id, markdown, inserted.children, self._max_bytes(max_bytes)
            )
            _ensure_inserted("append", markdown, inserted)

        log.info(
            "append_doc complete",
            extra={
                "extra_fields": {
                    "op": "append_doc",
                    "document_id": document_id,
                    "blocks_added": len(inserted.children),
                    "images_processed": images,
                }
            },
        )
        return AppendResult(
            blocks_added=len(inserted.children),
            images_processed=images,
            block_ids=[b.get("block_id") for b in inserted.children],
            warning=_compose_warning(inserted),
        )

    async def create_and_write_doc(
        self,
        title: str,
        markdown: str,
        max_bytes: int | None = None,
        folder_token: str | None = None,
    ) -> CreateAndWriteResult:
        """Create a document and write *markdown* into it.

        The two steps are not atomic.  If the write fails the created
        document is left in place and the raised error carries its
        ``document_id`` in ``context``.
        """
        created = await self.create_doc(title, folder_token)
        if not created.document_id:
            raise LarkifyRemoteCallError(
                "Document created but no document_id returned",
                context={"operation": "create_document"},
            )

        try:
            written = await self.write_doc(created.document_id, markdown, max_bytes)
        except LarkifyError as exc:
            exc.context.setdefault("document_id", created.document_id)
            raise

        return CreateAndWriteResult(
            document_id=created.document_id,
            title=created.title or title,
            url=created.url,
            blocks_deleted=written.blocks_deleted,
            blocks_added=written.blocks_added,
            images_processed=written.images_processed,
            warning=written.warning,
        )

    # ------------------------------------------------------------------
    # Reading and single-block edits
    # ------------------------------------------------------------------

    async def read_doc(self, document_id: str) -> ReadDocResult:
        """Return the plain text of a document plus a block-type histogram.

        ``hint`` is set when the document holds block types whose content
        is missing from the plain text (code, tables, images ...).
        """
        content_res = await self._documents.raw_content(document_id)
        info_res = await self._documents.get(document_id)
        blocks = await self._blocks.list_all(document_id)
        content = content_res.unwrap("raw_content")
        document = (info_res.data.get("document") or {}) if info_res.ok else {}

        counts: Counter[str] = Counter()
        structured: list[str] = []
        for block in blocks:
            block_type = block.get("block_type") or 0
            name = block_type_name(block_type)
            counts[name] += 1
            if block_type in STRUCTURED_BLOCK_TYPES and name not in structured:
                structured.append(name)

        hint = None
        if structured:
            hint = (
                f"This document contains {', '.join(structured)} which are NOT included "
                "in the plain text above. Use list_blocks to get full content."
            )

        return ReadDocResult(
            title=document.get("title"),
            content=content.get("content"),
            revision_id=document.get("revision_id"),
            block_count=len(blocks),
            block_types=dict(counts),
            hint=hint,
        )

    async def list_blocks(self, document_id: str) -> list[dict[str, Any]]:
        """Return every block of a document."""
        return await self._blocks.list_all(document_id)

    async def get_block(self, document_id: str, block_id: str) -> dict[str, Any]:
        """Return one block."""
        data = (await self._blocks.get(document_id, block_id)).unwrap("get_block")
        return data.get("block") or {}

    async def update_block(self, document_id: str, block_id: str, content: str) -> str:
        """Replace the text of a block with a single plain text run.

        Returns the updated block id.
        """
        (await self._blocks.get(document_id, block_id)).unwrap("get_block")
        response = await self._blocks.patch(
            document_id,
            block_id,
            {"update_text_elements": {"elements": [{"text_run": {"content": content}}]}},
        )
        response.unwrap("update_block")
        return block_id

    async def delete_block(self, document_id: str, block_id: str) -> str:
        """Delete one block by locating it among its parent's children.

        Returns the deleted block id.

        Raises
        ------
        LarkifyNotFoundError
            If the block is not among its parent's children.
        """
        data = (await self._blocks.get(document_id, block_id)).unwrap("get_block")
        parent_id = (data.get("block") or {}).get("parent_id") or document_id

        siblings = await self._blocks.children_all(document_id, parent_id)
        index = next(
            (i for i, item in enumerate(siblings) if item.get("block_id") == block_id),
            -1,
        )
        if index == -1:
            raise LarkifyNotFoundError(
                "Block not found",
                context={"document_id": document_id, "block_id": block_id, "parent_id": parent_id},
            )

        response = await self._blocks.batch_delete(document_id, parent_id, index, index + 1)
        response.unwrap("batch_delete")
        return block_id

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP transport and the default media fetcher."""
        await self._transport.close()
        if self._owns_fetcher and isinstance(self._fetcher, HttpMediaFetcher):
            await self._fetcher.close()

    async def __aenter__(self) -> AsyncLarkifyClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _max_bytes(self, max_bytes: int | None) -> int:
        return max_bytes if max_bytes is not None else self._config.media_max_bytes

    async def _insert_converted(
        self,
        document_id: str,
        conversion: ConvertResult,
    ) -> ReconciliationResult:
        block_map = build_block_map(conversion.blocks)
        ordered = reorder_blocks(conversion.blocks, conversion.first_level_block_ids)
        # Without a usable top-level order every block is already in
        # ``ordered``; descending would insert nested blocks twice.
        descend = any(bid in block_map for bid in conversion.first_level_block_ids)
        return await self._tables.insert_preserving_tables(
            document_id, ordered, block_map, descend=descend
        )


# ------------------------------------------------------------------
# Module-level helpers
# ------------------------------------------------------------------


def _compose_warning(result: ReconciliationResult) -> str | None:
    parts: list[str] = []
    if result.skipped:
        parts.append(f"Skipped unsupported block types: {', '.join(result.skipped)}.")
    parts.extend(result.warnings)
    return " ".join(parts) if parts else None


def _ensure_inserted(mode: str, markdown: str, result: ReconciliationResult) -> None:
    """Raise when non-empty markdown produced no created block."""
    if not markdown.strip() or result.children:
        return

    details: list[str] = []
    if result.skipped:
        details.append(f"skipped={', '.join(result.skipped)}")
    if result.warnings:
        details.append(f"warnings={' | '.join(result.warnings)}")
    suffix = f" ({'; '.join(details)})" if details else ""
    raise LarkifyZeroInsertionError(
        f"Document {mode} produced zero inserted blocks for non-empty content{suffix}. "
        "Check markdown compatibility and granted scopes.",
        context={"mode": mode, "skipped": list(result.skipped), "warnings": list(result.warnings)},
    )

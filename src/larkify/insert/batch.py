"""Bounded, retried, degradable block insertion.

Every create-children call goes through
:func:`~larkify.lark_api.retries.execute_with_backoff`.  A batch that
still fails is split into one call per block so that a single rejected
block does not take its 49 neighbours down with it.
"""

from __future__ import annotations

from typing import Any

from larkify.config import LarkifyConfig
from larkify.converter.sanitize import is_creatable, sanitize_blocks
from larkify.errors import LarkifyError
from larkify.lark_api.blocks import AsyncBlockAPI
from larkify.lark_api.retries import execute_with_backoff, is_retryable_error
from larkify.models import ApiResponse, InsertResult
from larkify.observability import get_logger
from larkify.utils.chunk import chunk_blocks

log = get_logger("larkify.insert")

CREATE_CHILDREN_OP = "create_children"


def _align_sources(
    children: list[dict[str, Any]],
    sources: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    # Created blocks map back to their sources only when counts agree.
    if len(children) == len(sources):
        return list(sources)
    return [{} for _ in children]


class BlockInserter:
    """Insert sanitized blocks under a parent, in document order.

    Parameters
    ----------
    block_api:
        Endpoint wrapper for create-children.
    config:
        Supplies ``batch_size`` and the retry policy.
    """

    def __init__(self, block_api: AsyncBlockAPI, config: LarkifyConfig) -> None:
        self._blocks = block_api
        self._config = config
        self._policy = config.retry_policy()
        self._metrics = block_api.metrics

    async def _create_with_retry(
        self,
        document_id: str,
        parent_id: str,
        children: list[dict[str, Any]],
    ) -> ApiResponse:
        return await execute_with_backoff(
            CREATE_CHILDREN_OP,
            lambda: self._blocks.create_children(document_id, parent_id, children),
            is_success=lambda res: res.ok,
            should_retry=lambda res: is_retryable_error(res.code, res.msg),
            get_message=lambda res: res.msg or "unknown error",
            policy=self._policy,
            metrics=self._metrics,
        )

    def _record_created(self, count: int) -> None:
        if count:
            self._metrics.increment("larkify.blocks_created_total", count)

    async def insert_blocks(
        self,
        document_id: str,
        blocks: list[dict[str, Any]],
        parent_id: str | None = None,
    ) -> InsertResult:
        """Insert *blocks* with a single (retried) create call.

        Parameters
        ----------
        document_id:
            Target document.
        blocks:
            Source blocks; sanitized before sending.
        parent_id:
            Parent block id.  Defaults to the document root.

        Returns
        -------
        InsertResult
            Created blocks and skipped type names.  No call is made when
            nothing survives sanitation.

        Raises
        ------
        LarkifyRemoteCallError
            If the call still fails after the retry policy.
        """
        parent = parent_id or document_id
        sanitized = sanitize_blocks(blocks)
        if not sanitized.blocks:
            return InsertResult(skipped=sanitized.skipped)

        response = await self._create_with_retry(document_id, parent, sanitized.blocks)
        data = response.unwrap(CREATE_CHILDREN_OP)
        children = data.get("children") or []
        self._record_created(len(children))
        return InsertResult(
            children=children,
            skipped=sanitized.skipped,
            sources=_align_sources(children, [b for b in blocks if is_creatable(b)]),
        )

    async def insert_in_batches(
        self,
        document_id: str,
        blocks: list[dict[str, Any]],
        parent_id: str | None = None,
        batch_size: int | None = None,
    ) -> InsertResult:
        """Insert *blocks* in consecutive batches, degrading per block on failure.

        A batch whose retried call still answers with a non-zero code is
        re-sent one block at a time.  Individual failures in that mode are
        logged and skipped.  An exception raised by a batch call itself
        (network failure, for instance) propagates.

        Returns
        -------
        InsertResult
            All created blocks in document order, the de-duplicated skipped
            type names, and the source of each created block.
        """
        parent = parent_id or document_id
        size = batch_size or self._config.batch_size
        result = InsertResult()

        for batch in chunk_blocks(blocks, size):
            sanitized = sanitize_blocks(batch)
            for name in sanitized.skipped:
                if name not in result.skipped:
                    result.skipped.append(name)
            if not sanitized.blocks:
                continue

            kept = [b for b in batch if is_creatable(b)]
            response = await self._create_with_retry(document_id, parent, sanitized.blocks)

            if response.ok:
                children = response.data.get("children") or []
                result.children.extend(children)
                result.sources.extend(_align_sources(children, kept))
                self._record_created(len(children))
                continue

            log.warning(
                f"Batch insert failed: {response.msg}. Trying individual inserts...",
                extra={
                    "extra_fields": {
                        "op": "insert_batch",
                        "document_id": document_id,
                        "parent_id": parent,
                        "batch_size": len(sanitized.blocks),
                        "remote_code": response.code,
                        "remote_msg": response.msg,
                    }
                },
            )
            self._metrics.increment("larkify.batch_degraded_total")
            await self._insert_one_by_one(document_id, parent, sanitized.blocks, kept, result)

        return result

    async def _insert_one_by_one(
        self,
        document_id: str,
        parent: str,
        cleaned: list[dict[str, Any]],
        sources: list[dict[str, Any]],
        result: InsertResult,
    ) -> None:
        for block, source in zip(cleaned, sources):
            try:
                response = await self._create_with_retry(document_id, parent, [block])
            except LarkifyError as exc:
                log.error(
                    f"Error inserting block: {exc.message}",
                    extra={
                        "extra_fields": {
                            "op": "insert_single",
                            "document_id": document_id,
                            "block_type": block.get("block_type"),
                            "error_code": str(exc.code),
                        }
                    },
                )
                continue

            if not response.ok:
                log.error(
                    f"Failed to insert block: {response.msg}",
                    extra={
                        "extra_fields": {
                            "op": "insert_single",
                            "document_id": document_id,
                            "block_type": block.get("block_type"),
                            "remote_code": response.code,
                        }
                    },
                )
                continue

            children = response.data.get("children") or []
            result.children.extend(children)
            result.sources.extend(_align_sources(children, [source]))
            self._record_created(len(children))

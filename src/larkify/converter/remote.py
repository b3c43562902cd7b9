"""Markdown to docx block conversion through the remote convert endpoint."""

from __future__ import annotations

from typing import Any

from larkify.config import LarkifyConfig
from larkify.errors import LarkifyConversionError
from larkify.lark_api.documents import AsyncDocumentAPI
from larkify.models import ConvertResult
from larkify.observability import get_logger

log = get_logger("larkify.converter")


class MarkdownConverter:
    """Turn markdown into a flat block collection plus its top-level order.

    The conversion is a single remote call and is not retried: a rejected
    payload is rejected deterministically.

    Parameters
    ----------
    document_api:
        Endpoint wrapper used for the convert call.
    config:
        Supplies ``max_content_length`` for the size caution.
    """

    def __init__(self, document_api: AsyncDocumentAPI, config: LarkifyConfig) -> None:
        self._documents = document_api
        self._config = config

    async def convert(self, markdown: str) -> ConvertResult:
        """Convert *markdown*.

        Raises
        ------
        LarkifyConversionError
            When the endpoint answers with a non-zero code.  The remote
            ``code`` and ``msg`` are kept in the error context.
        """
        length = len(markdown)
        if length > self._config.max_content_length:
            log.warning(
                f"Content length ({length}) exceeds recommended limit "
                f"({self._config.max_content_length}). May cause API errors.",
                extra={
                    "extra_fields": {
                        "op": "convert",
                        "content_length": length,
                        "limit": self._config.max_content_length,
                    }
                },
            )

        response = await self._documents.convert(markdown)
        if not response.ok:
            raise LarkifyConversionError(
                message=response.msg or f"Markdown conversion failed with code {response.code}",
                context={
                    "remote_code": response.code,
                    "remote_msg": response.msg,
                    "content_length": length,
                },
            )

        blocks: list[dict[str, Any]] = response.data.get("blocks") or []
        order: list[str] = response.data.get("first_level_block_ids") or []
        log.debug(
            "Markdown converted",
            extra={
                "extra_fields": {
                    "op": "convert",
                    "blocks": len(blocks),
                    "first_level": len(order),
                }
            },
        )
        return ConvertResult(blocks=blocks, first_level_block_ids=order)

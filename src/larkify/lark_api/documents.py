"""Document-level endpoints of the docx API.

Thin wrappers that return the raw :class:`ApiResponse` envelope so callers
can decide between raising, retrying and degrading.
"""

from __future__ import annotations

from typing import Any

from larkify.models import ApiResponse

from .transport import AsyncLarkTransport


class AsyncDocumentAPI:
    """Async wrapper for ``/docx/v1/documents``.

    Parameters
    ----------
    transport:
        A configured :class:`AsyncLarkTransport`.
    """

    def __init__(self, transport: AsyncLarkTransport) -> None:
        self._transport = transport

    async def create(self, title: str, folder_token: str | None = None) -> ApiResponse:
        """Create an empty document.  ``data.document`` holds its id and title."""
        body: dict[str, Any] = {"title": title}
        if folder_token:
            body["folder_token"] = folder_token
        return await self._transport.request("POST", "/docx/v1/documents", json=body)

    async def convert(self, markdown: str) -> ApiResponse:
        """Convert markdown into a flat block collection.

        ``data.blocks`` is unordered; ``data.first_level_block_ids`` gives
        the document order of the root's children.
        """
        return await self._transport.request(
            "POST",
            "/docx/v1/documents/blocks/convert",
            json={"content_type": "markdown", "content": markdown},
        )

    async def get(self, document_id: str) -> ApiResponse:
        """Fetch document metadata (title, revision id)."""
        return await self._transport.request("GET", f"/docx/v1/documents/{document_id}")

    async def raw_content(self, document_id: str) -> ApiResponse:
        """Fetch the plain-text rendering of a document."""
        return await self._transport.request(
            "GET",
            f"/docx/v1/documents/{document_id}/raw_content",
            params={"lang": 0},
        )

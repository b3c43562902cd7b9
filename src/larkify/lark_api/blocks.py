"""Block endpoints of the docx API.

:class:`AsyncBlockAPI` wraps ``/docx/v1/documents/{doc}/blocks``.  Read
helpers that walk pagination (:meth:`list_all`, :meth:`children_all`)
raise on failure; single mutations return the envelope so the insert
engine can classify and retry them.
"""

from __future__ import annotations

from typing import Any

from larkify.models import ApiResponse

from .transport import AsyncLarkTransport


def _blocks_path(document_id: str) -> str:
    return f"/docx/v1/documents/{document_id}/blocks"


class AsyncBlockAPI:
    """Async wrapper for the docx block endpoints.

    Parameters
    ----------
    transport:
        A configured :class:`AsyncLarkTransport`.
    """

    def __init__(self, transport: AsyncLarkTransport) -> None:
        self._transport = transport

    @property
    def metrics(self) -> Any:
        return self._transport.metrics

    async def list_all(self, document_id: str) -> list[dict[str, Any]]:
        """Return every block of a document, root page included.

        Raises
        ------
        LarkifyRemoteCallError
            If any page of the listing fails.
        """
        return [
            item
            async for item in self._transport.paginate(
                _blocks_path(document_id), operation="list_blocks"
            )
        ]

    async def get(self, document_id: str, block_id: str) -> ApiResponse:
        """Fetch one block.  ``data.block`` holds it."""
        return await self._transport.request(
            "GET", f"{_blocks_path(document_id)}/{block_id}"
        )

    async def children_all(self, document_id: str, block_id: str) -> list[dict[str, Any]]:
        """Return the direct children of *block_id* in document order."""
        return [
            item
            async for item in self._transport.paginate(
                f"{_blocks_path(document_id)}/{block_id}/children",
                operation="get_children",
            )
        ]

    async def create_children(
        self,
        document_id: str,
        parent_id: str,
        children: list[dict[str, Any]],
        index: int = -1,
    ) -> ApiResponse:
        """Create *children* under *parent_id*.

        ``index=-1`` appends.  ``data.children`` lists the created blocks
        with server-assigned ids, in request order.  For a table the
        response also carries the generated cell ids under
        ``table.cells``.
        """
        return await self._transport.request(
            "POST",
            f"{_blocks_path(document_id)}/{parent_id}/children",
            params={"document_revision_id": -1},
            json={"children": children, "index": index},
        )

    async def batch_delete(
        self,
        document_id: str,
        parent_id: str,
        start_index: int,
        end_index: int,
    ) -> ApiResponse:
        """Delete children ``[start_index, end_index)`` of *parent_id*."""
        return await self._transport.request(
            "DELETE",
            f"{_blocks_path(document_id)}/{parent_id}/children/batch_delete",
            params={"document_revision_id": -1},
            json={"start_index": start_index, "end_index": end_index},
        )

    async def patch(
        self,
        document_id: str,
        block_id: str,
        payload: dict[str, Any],
    ) -> ApiResponse:
        """Apply an update request (``replace_image``, ``update_text_elements`` ...)."""
        return await self._transport.request(
            "PATCH",
            f"{_blocks_path(document_id)}/{block_id}",
            params={"document_revision_id": -1},
            json=payload,
        )

"""Drive media upload endpoint.

Docx images are uploaded with ``parent_type="docx_image"`` and the image
block's id as ``parent_node``, then attached to the block with a
``replace_image`` patch.
"""

from __future__ import annotations

from larkify.models import ApiResponse

from .transport import AsyncLarkTransport


class AsyncMediaAPI:
    """Async wrapper for ``/drive/v1/medias``.

    Parameters
    ----------
    transport:
        A configured :class:`AsyncLarkTransport`.
    """

    def __init__(self, transport: AsyncLarkTransport) -> None:
        self._transport = transport

    async def upload_all(
        self,
        file_name: str,
        parent_node: str,
        content: bytes,
        parent_type: str = "docx_image",
    ) -> ApiResponse:
        """Upload *content* in a single multipart request.

        ``data.file_token`` identifies the stored media on success.
        """
        return await self._transport.request(
            "POST",
            "/drive/v1/medias/upload_all",
            data={
                "file_name": file_name,
                "parent_type": parent_type,
                "parent_node": parent_node,
                "size": str(len(content)),
            },
            files={"file": (file_name, content)},
        )

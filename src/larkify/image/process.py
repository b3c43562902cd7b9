"""Attach remote images to the image blocks created from markdown.

The converter creates empty image blocks.  Each one is filled by
downloading the image, uploading it as docx media scoped to the block, and
patching the block with the returned file token.  Pairing is positional:
the *i*-th ``http(s)`` image URL in the markdown goes to the *i*-th image
block in the insertion result.  Surplus URLs or blocks are left alone.
"""

from __future__ import annotations

from typing import Any

from larkify.errors import LarkifyUploadError
from larkify.lark_api.blocks import AsyncBlockAPI
from larkify.lark_api.media import AsyncMediaAPI
from larkify.models import BlockType
from larkify.observability import get_logger

from .extract import extract_image_urls, file_name_for
from .fetch import MediaFetcher

log = get_logger("larkify.image")


class ImageProcessor:
    """Download, upload and attach images for a freshly written document.

    Parameters
    ----------
    media_api:
        Upload endpoint wrapper.
    block_api:
        Block endpoint wrapper used for the ``replace_image`` patch.
    fetcher:
        Source of image bytes.
    """

    def __init__(
        self,
        media_api: AsyncMediaAPI,
        block_api: AsyncBlockAPI,
        fetcher: MediaFetcher,
    ) -> None:
        self._media = media_api
        self._blocks = block_api
        self._fetcher = fetcher
        self._metrics = block_api.metrics

    async def upload_image(self, block_id: str, content: bytes, file_name: str) -> str:
        """Upload *content* as media owned by *block_id* and return its file token.

        Raises
        ------
        LarkifyUploadError
            If the response carries no ``file_token``.
        """
        response = await self._media.upload_all(file_name, block_id, content)
        token = response.data.get("file_token") if response.ok else None
        if not token:
            raise LarkifyUploadError(
                message=f"Image upload failed: no file_token returned ({response.msg or response.code})",
                context={"file_name": file_name, "parent_node": block_id},
            )
        return token

    async def attach_image(self, document_id: str, block_id: str, file_token: str) -> None:
        """Point image block *block_id* at uploaded media *file_token*."""
        response = await self._blocks.patch(
            document_id, block_id, {"replace_image": {"token": file_token}}
        )
        response.unwrap("replace_image")

    async def process_images(
        self,
        document_id: str,
        markdown: str,
        inserted_blocks: list[dict[str, Any]],
        max_bytes: int,
    ) -> int:
        """Fill the image blocks of *inserted_blocks* from the URLs in *markdown*.

        Parameters
        ----------
        document_id:
            Target document.
        markdown:
            The markdown that produced *inserted_blocks*.
        inserted_blocks:
            Created blocks in document order.
        max_bytes:
            Download ceiling per image.

        Returns
        -------
        int
            Number of images attached.  A failing pair is logged and
            counted as unprocessed; it never aborts the others.
        """
        urls = extract_image_urls(markdown)
        if not urls:
            return 0

        image_blocks = [b for b in inserted_blocks if b.get("block_type") == BlockType.IMAGE]
        if len(urls) != len(image_blocks):
            log.info(
                "Image URL and image block counts differ; pairing by position",
                extra={
                    "extra_fields": {
                        "op": "process_images",
                        "document_id": document_id,
                        "urls": len(urls),
                        "image_blocks": len(image_blocks),
                    }
                },
            )

        processed = 0
        for index, (url, block) in enumerate(zip(urls, image_blocks)):
            block_id = block.get("block_id", "")
            try:
                content = await self._fetcher.fetch(url, max_bytes)
                token = await self.upload_image(block_id, content, file_name_for(url, index))
                await self.attach_image(document_id, block_id, token)
            except Exception as exc:
                self._metrics.increment("larkify.image_failures_total")
                log.error(
                    f"Failed to process image {url}: {exc}",
                    extra={
                        "extra_fields": {
                            "op": "process_images",
                            "document_id": document_id,
                            "block_id": block_id,
                            "url": url,
                            "error_type": type(exc).__name__,
                        }
                    },
                )
                continue
            processed += 1
            self._metrics.increment("larkify.images_processed_total")

        return processed

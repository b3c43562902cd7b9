"""larkify: Markdown to Lark/Feishu docx synchronization.

Public re-exports
-----------------

* **Client:** :class:`AsyncLarkifyClient`
* **Configuration:** :class:`LarkifyConfig`
* **Errors:** Every :class:`LarkifyError` subclass and :class:`ErrorCode`
* **Models:** Result dataclasses, :class:`BlockType`, :class:`ApiResponse`

Usage::

    from larkify import AsyncLarkifyClient

    async with AsyncLarkifyClient(token="t-xxx") as client:
        result = await client.write_doc("doxcnXXXX", "# Title\\n\\nBody")
"""

from __future__ import annotations

# ── Client ─────────────────────────────────────────────────────────────
from larkify.async_client import AsyncLarkifyClient

# ── Configuration ───────────────────────────────────────────────────────
from larkify.config import LarkifyConfig

# ── Errors ──────────────────────────────────────────────────────────────
from larkify.errors import (
    ErrorCode,
    LarkifyConversionError,
    LarkifyError,
    LarkifyImageError,
    LarkifyImageSizeError,
    LarkifyNetworkError,
    LarkifyNotFoundError,
    LarkifyRemoteCallError,
    LarkifyUploadError,
    LarkifyZeroInsertionError,
)

# ── Collaborators ───────────────────────────────────────────────────────
from larkify.image import HttpMediaFetcher, MediaFetcher
from larkify.lark_api.retries import RetryPolicy

# ── Models ──────────────────────────────────────────────────────────────
from larkify.models import (
    ApiResponse,
    AppendResult,
    BlockType,
    CreateAndWriteResult,
    CreateDocResult,
    ReadDocResult,
    WriteResult,
    block_type_name,
)

# ── Observability ───────────────────────────────────────────────────────
from larkify.observability import MetricsHook, NoopMetricsHook
from larkify.utils.locks import KeyedLock

__version__ = "0.1.0"

__all__ = [
    "ApiResponse",
    "AppendResult",
    "AsyncLarkifyClient",
    "BlockType",
    "CreateAndWriteResult",
    "CreateDocResult",
    "ErrorCode",
    "HttpMediaFetcher",
    "KeyedLock",
    "LarkifyConfig",
    "LarkifyConversionError",
    "LarkifyError",
    "LarkifyImageError",
    "LarkifyImageSizeError",
    "LarkifyNetworkError",
    "LarkifyNotFoundError",
    "LarkifyRemoteCallError",
    "LarkifyUploadError",
    "LarkifyZeroInsertionError",
    "MediaFetcher",
    "MetricsHook",
    "NoopMetricsHook",
    "ReadDocResult",
    "RetryPolicy",
    "WriteResult",
    "block_type_name",
]

"""larkify.lark_api -- Lark open-platform transport and endpoint wrappers.

This sub-package provides:

* :mod:`.rate_limit` -- async token bucket.
* :mod:`.retries` -- retry policy, classification and the backoff wrapper.
* :mod:`.transport` -- HTTP transport with auth, pacing and envelope parsing.
* :mod:`.documents` -- document endpoints (create, convert, get, raw content).
* :mod:`.blocks` -- block endpoints (list, get, children, create, delete, patch).
* :mod:`.media` -- media upload.
"""

from __future__ import annotations

from .blocks import AsyncBlockAPI
from .documents import AsyncDocumentAPI
from .media import AsyncMediaAPI
from .rate_limit import AsyncTokenBucket
from .retries import (
    DEFAULT_RETRY_POLICY,
    RetryPolicy,
    compute_backoff,
    execute_with_backoff,
    is_retryable_error,
)
from .transport import AsyncLarkTransport

__all__ = [
    "DEFAULT_RETRY_POLICY",
    "AsyncBlockAPI",
    "AsyncDocumentAPI",
    "AsyncLarkTransport",
    "AsyncMediaAPI",
    "AsyncTokenBucket",
    "RetryPolicy",
    "compute_backoff",
    "execute_with_backoff",
    "is_retryable_error",
]

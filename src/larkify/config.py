"""SDK configuration for larkify.

:class:`LarkifyConfig` is a plain dataclass that captures every tuneable
knob exposed by the SDK.  Instances are created by
:class:`AsyncLarkifyClient` from its keyword arguments and shared by the
transport, the insert engine and the image post-processor.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from larkify.lark_api.retries import RetryPolicy

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

MAX_BLOCKS_PER_INSERT = 50
"""Documented per-call limit of the create-children endpoint."""

MAX_CONTENT_LENGTH = 50_000
"""Empirical markdown length above which conversion may be rejected."""

DEFAULT_MEDIA_MAX_BYTES = 30 * 1024 * 1024


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class LarkifyConfig:
    """Complete configuration for a larkify client.

    Every parameter has a sensible default so that the only *required*
    value is ``token``.

    Parameters
    ----------
    token:
        Tenant or user access token.  **Required.**  Never logged.
        Resolving it from app credentials is the caller's job.
    base_url:
        API root URL.  Override for the Lark (international) domain, a
        proxy, or a local test server.
    doc_url_base:
        Prefix used to build the human-facing URL of created documents.
    batch_size:
        Maximum number of blocks sent in a single create-children call.
    max_content_length:
        Markdown length (characters) above which a caution is logged
        before conversion.  Larger inputs are still submitted.
    media_max_bytes:
        Default byte ceiling for image downloads when the caller does not
        pass one explicitly.
    retry_max_attempts:
        Total attempts (including the first) for retryable create calls.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper cap (seconds) on the computed backoff before jitter.
    retry_jitter_ratio:
        Symmetric jitter applied around the computed delay (``0.2`` means
        plus/minus 20 %).
    rate_limit_rps:
        Target requests per second for client-side pacing (token bucket).
    timeout_seconds:
        HTTP request timeout in seconds.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    metrics:
        Optional :class:`~larkify.observability.MetricsHook` backend.
    debug_dump_payload:
        Write the (redacted) request/response pairs to *stderr*.
    """

    # ── Core ────────────────────────────────────────────────────────────
    token: str = ""

    base_url: str = "https://open.feishu.cn/open-apis"

    doc_url_base: str = "https://feishu.cn/docx"

    # ── Insertion ───────────────────────────────────────────────────────
    batch_size: int = MAX_BLOCKS_PER_INSERT

    max_content_length: int = MAX_CONTENT_LENGTH

    # ── Images ──────────────────────────────────────────────────────────
    media_max_bytes: int = DEFAULT_MEDIA_MAX_BYTES

    # ── Retry & rate ────────────────────────────────────────────────────
    retry_max_attempts: int = 4

    retry_base_delay: float = 0.25

    retry_max_delay: float = 2.5

    retry_jitter_ratio: float = 0.2

    rate_limit_rps: float = 5.0

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your access token, or target localhost for testing."
            )

        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_content_length < 1:
            raise ValueError(
                f"max_content_length must be >= 1, got {self.max_content_length}"
            )
        if self.media_max_bytes <= 0:
            raise ValueError(f"media_max_bytes must be > 0, got {self.media_max_bytes}")
        if self.retry_max_attempts < 1:
            raise ValueError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if not 0 <= self.retry_jitter_ratio < 1:
            raise ValueError(
                f"retry_jitter_ratio must be in [0, 1), got {self.retry_jitter_ratio}"
            )
        if self.rate_limit_rps <= 0:
            raise ValueError(f"rate_limit_rps must be > 0, got {self.rate_limit_rps}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    def retry_policy(self) -> RetryPolicy:
        """Return the :class:`RetryPolicy` described by the ``retry_*`` fields."""
        from larkify.lark_api.retries import RetryPolicy

        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            jitter_ratio=self.retry_jitter_ratio,
        )

    def __repr__(self) -> str:
        """Mask the token to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"LarkifyConfig({', '.join(parts)})"

"""Full error hierarchy for the larkify SDK.

Every public error class inherits from LarkifyError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Error codes are defined as a :class:`str` enum so that they serialise
naturally to JSON and can be matched with simple ``==`` comparisons.

Only *terminal* conditions are modelled as exceptions.  Partial table
reconciliation, skipped block types and failed image pairs are reported
through the ``warning`` field of the result objects instead.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the SDK can raise."""

    REMOTE_CALL_ERROR = "REMOTE_CALL_ERROR"
    NOT_FOUND = "NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    CONVERSION_ERROR = "CONVERSION_ERROR"
    ZERO_INSERTION = "ZERO_INSERTION"
    IMAGE_ERROR = "IMAGE_ERROR"
    IMAGE_SIZE_ERROR = "IMAGE_SIZE_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class LarkifyError(Exception):
    """Base exception for all larkify errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.  For remote
        failures this is the message the Lark API returned.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# API / transport errors
# ---------------------------------------------------------------------------

class LarkifyRemoteCallError(LarkifyError):
    """The Lark API answered with a non-zero ``code`` that was either not
    retryable or still failing once the retry policy was exhausted.

    Context keys: ``operation``, ``remote_code``, ``remote_msg``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.REMOTE_CALL_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class LarkifyNotFoundError(LarkifyError):
    """A block could not be located where the operation expected it.

    Context keys: ``document_id``, ``block_id``, ``parent_id``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=message,
            context=context,
            cause=cause,
        )


class LarkifyNetworkError(LarkifyError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``method``, ``path``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NETWORK_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Conversion / write errors
# ---------------------------------------------------------------------------

class LarkifyConversionError(LarkifyError):
    """The remote markdown-to-blocks conversion failed, or produced nothing
    for an operation that requires content.

    Context keys: ``remote_code``, ``remote_msg``, ``content_length``.
    """

    def __init__(
        self,
        message: str = "Conversion error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.CONVERSION_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class LarkifyZeroInsertionError(LarkifyError):
    """Non-empty markdown resulted in zero durably inserted blocks.

    Distinct from :class:`LarkifyRemoteCallError`: every individual call
    may have succeeded while sanitation dropped all content.

    Context keys: ``mode``, ``skipped``, ``warnings``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.ZERO_INSERTION,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Image errors
# ---------------------------------------------------------------------------

class LarkifyImageError(LarkifyError):
    """Base class for image-related errors.

    Context varies by subclass.
    """

    def __init__(
        self,
        code: str = ErrorCode.IMAGE_ERROR,
        message: str = "Image error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class LarkifyImageSizeError(LarkifyImageError):
    """A remote image is larger than the configured byte ceiling.

    Context keys: ``url``, ``size_bytes``, ``max_bytes``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.IMAGE_SIZE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class LarkifyUploadError(LarkifyImageError):
    """The media upload endpoint did not return a file token.

    Context keys: ``file_name``, ``parent_node``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.UPLOAD_ERROR,
            message=message,
            context=context,
            cause=cause,
        )

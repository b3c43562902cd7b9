"""Metrics hook protocol and no-op default implementation.

larkify emits counters and timings around remote calls, retries, block
creation and image attachment.  A :class:`NoopMetricsHook` is used unless
the caller passes a backend satisfying :class:`MetricsHook` through
``LarkifyConfig.metrics``.

Emitted metric names:

* ``larkify.requests_total``          -- counter (tags: method, path, status)
* ``larkify.request_duration_ms``     -- timing
* ``larkify.rate_limit_wait_ms``      -- timing
* ``larkify.retries_total``           -- counter (tags: op)
* ``larkify.blocks_created_total``    -- counter
* ``larkify.batch_degraded_total``    -- counter
* ``larkify.images_processed_total``  -- counter
* ``larkify.image_failures_total``    -- counter
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    Tags are string key/value pairs; backends map them onto their own
    labelling scheme.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to an absolute value."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass


def resolve_metrics(hook: object | None) -> MetricsHook:
    """Return *hook* or a shared :class:`NoopMetricsHook` when it is ``None``."""
    return hook if hook is not None else _NOOP  # type: ignore[return-value]


_NOOP = NoopMetricsHook()

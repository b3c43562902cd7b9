"""Retry classification, backoff computation and the retryable-call wrapper.

Lark reports most failures *inside* a successful HTTP response, as a
non-zero ``code`` in the ``{code, msg, data}`` envelope.  Retry decisions
are therefore made on the envelope, not on the HTTP status:

* :func:`is_retryable_error` -- is this ``(code, msg)`` a transient
  rate/frequency rejection?
* :func:`compute_backoff` -- exponential backoff with symmetric jitter.
* :func:`execute_with_backoff` -- run an operation until it succeeds, fails
  permanently, or the attempt budget is spent.  It never raises because of
  exhaustion; the caller decides what a final failure means.
"""

from __future__ import annotations

import asyncio
import random
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from larkify.observability import get_logger, resolve_metrics

log = get_logger("larkify.retries")

T = TypeVar("T")

# 429 as an envelope code plus the docx/drive frequency-limit codes.
RETRYABLE_CODES: frozenset[int] = frozenset({429, 1254290, 1254291, 1255040})

_RETRYABLE_MESSAGE_RE = re.compile(
    r"\brate\b|\bfrequency\b|\btoo many\b|\blimit\b|\bqps\b|频率|限流",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy for remote mutations.

    Attributes
    ----------
    max_attempts:
        Total attempts including the first.
    base_delay:
        Delay in seconds before the first retry.
    max_delay:
        Cap in seconds on the exponential term (jitter is applied after).
    jitter_ratio:
        Half-width of the uniform jitter band as a fraction of the delay.
    """

    max_attempts: int = 4
    base_delay: float = 0.25
    max_delay: float = 2.5
    jitter_ratio: float = 0.2


DEFAULT_RETRY_POLICY = RetryPolicy()


def is_retryable_error(code: int | None, msg: str | None) -> bool:
    """Return ``True`` when a failed call is worth retrying.

    Parameters
    ----------
    code:
        The envelope ``code``.  ``0`` and ``None`` are never retryable.
    msg:
        The envelope ``msg``.  Checked for rate-limit wording when the
        code is not one of :data:`RETRYABLE_CODES`.
    """
    if not code:
        return False
    if code in RETRYABLE_CODES:
        return True
    return bool(msg) and _RETRYABLE_MESSAGE_RE.search(msg) is not None


def compute_backoff(
    attempt: int,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    rand: Callable[[], float] = random.random,
) -> float:
    """Compute the delay in seconds to wait after failed *attempt* (1-based).

    The exponential term ``base_delay * 2 ** (attempt - 1)`` is capped at
    ``max_delay`` and then spread uniformly over
    ``[d * (1 - jitter_ratio), d * (1 + jitter_ratio)]``.  With the
    default policy the longest possible wait is ``2.5 * 1.2`` seconds.
    """
    exponential = min(policy.max_delay, policy.base_delay * (2 ** (attempt - 1)))
    jitter = exponential * policy.jitter_ratio
    return max(0.0, exponential - jitter + rand() * 2 * jitter)


async def execute_with_backoff(
    operation_name: str,
    operation: Callable[[], Awaitable[T]],
    is_success: Callable[[T], bool],
    should_retry: Callable[[T], bool],
    get_message: Callable[[T], str],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    metrics: Any | None = None,
) -> T:
    """Run *operation* under *policy* and return its last result.

    Parameters
    ----------
    operation_name:
        Label used in retry log lines and the ``op`` metric tag.
    operation:
        Zero-argument coroutine factory.  Exceptions it raises propagate
        unchanged; only returned results are classified.
    is_success:
        Predicate for a successful result.  Returned immediately.
    should_retry:
        Predicate for a transient failure.  Non-retryable failures are
        returned immediately.
    get_message:
        Extracts a human-readable message for the retry log line.
    policy:
        Attempt budget and backoff shape.
    sleep:
        Awaitable sleep, injectable for tests.
    metrics:
        Optional metrics hook; ``larkify.retries_total`` is incremented
        once per retry.

    Returns
    -------
    T
        The first successful result, the first non-retryable failure, or
        the result of the final attempt.
    """
    hook = resolve_metrics(metrics)
    max_attempts = max(1, policy.max_attempts)
    attempt = 1
    while True:
        result = await operation()
        if is_success(result):
            return result
        if attempt >= max_attempts or not should_retry(result):
            return result

        delay = compute_backoff(attempt, policy)
        delay_ms = round(delay * 1000)
        message = get_message(result)
        log.warning(
            f"{operation_name} retry {attempt}/{max_attempts - 1} after {delay_ms}ms: {message}",
            extra={
                "extra_fields": {
                    "op": operation_name,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "delay_ms": delay_ms,
                    "remote_msg": message,
                }
            },
        )
        hook.increment("larkify.retries_total", tags={"op": operation_name})
        await sleep(delay)
        attempt += 1

"""
Async retry with exponential backoff and cooperative cancellation.

Every remote read goes through ``execute_with_retry``. The first attempt runs
immediately; after a retryable failure the executor waits
``min(base_delay * 2**attempt, 30s)`` and tries again, up to
``policy.max_retries`` extra attempts. Permanent failures are raised at once.

The wait between attempts races the delay against the cancellation token:
whichever finishes first decides whether the loop continues or stops with a
RetryCancelledError.

Usage:
    policy = RetryPolicy(max_retries=3, base_delay=2.0)
    token = CancellationToken()

    events = await execute_with_retry(
        lambda: client.list_events(mailbox, top=10),
        policy,
        token,
    )
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from graphtool.errors import RetryCancelledError, RetryExhaustedError
from graphtool.logging_config import get_logger
from graphtool.resilience.cancellation import CancellationToken
from graphtool.resilience.classifier import is_retryable


logger = get_logger(__name__)

T = TypeVar("T")

MAX_BACKOFF_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 2.0


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry budget shared by every remote call in a process run.

    Attributes:
        max_retries: Extra attempts after the first one (>= 0)
        base_delay: Delay before the first retry, in seconds (> 0)
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_BASE_DELAY

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay <= 0:
            raise ValueError(f"base_delay must be > 0, got {self.base_delay}")

    @classmethod
    def from_milliseconds(cls, max_retries: int, base_delay_ms: int) -> RetryPolicy:
        return cls(max_retries=max_retries, base_delay=base_delay_ms / 1000.0)

    def delay_for(self, attempt: int) -> float:
        return backoff_delay(attempt, self.base_delay)


def backoff_delay(
    attempt: int, base_delay: float, ceiling: float = MAX_BACKOFF_SECONDS
) -> float:
    """Delay in seconds before the retry that follows ``attempt`` (0-based)."""
    # Bound the exponent so huge attempt numbers cannot overflow
    exponent = min(attempt, 32)
    return min(base_delay * (2**exponent), ceiling)


async def _wait_or_cancel(delay: float, cancel: CancellationToken | None) -> None:
    """Sleep for ``delay`` seconds unless ``cancel`` fires first."""
    if cancel is None:
        await asyncio.sleep(delay)
        return

    if cancel.cancelled:
        raise RetryCancelledError(cancel.error) from cancel.error

    try:
        reason = await asyncio.wait_for(cancel.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return
    raise RetryCancelledError(reason) from reason


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    cancel: CancellationToken | None = None,
    *,
    classify: Callable[[BaseException | None], bool] = is_retryable,
    log: Any = None,
) -> T:
    """
    Run ``operation`` until it succeeds, fails permanently, or the retry
    budget runs out.

    ``operation`` may be invoked up to ``policy.max_retries + 1`` times, so
    it must be safe to repeat.

    Args:
        operation: Zero-argument coroutine factory performing one remote call
        policy: Retry budget and base delay
        cancel: Token observed while waiting between attempts
        classify: Transient-error predicate (defaults to is_retryable)
        log: Logger for retry diagnostics (defaults to this module's logger)

    Returns:
        Whatever the successful attempt returned

    Raises:
        Exception: The operation's own error when it is not retryable
        RetryExhaustedError: Every attempt failed with a retryable error
        RetryCancelledError: Cancellation arrived during a backoff wait
    """
    log = log or logger
    attempt = 0

    while True:
        try:
            result = await operation()
        except Exception as e:
            if not classify(e):
                raise

            if attempt >= policy.max_retries:
                raise RetryExhaustedError(policy.max_retries, e) from e

            delay = policy.delay_for(attempt)
            log.warning(
                f"Retryable error encountered (attempt {attempt + 1}/{policy.max_retries}): "
                f"{e}. Retrying in {delay:.3g}s..."
            )
            await _wait_or_cancel(delay, cancel)
            attempt += 1
            continue

        if attempt > 0:
            log.info(f"Operation succeeded after {attempt} retries")
        return result


__all__ = [
    "DEFAULT_BASE_DELAY",
    "DEFAULT_MAX_RETRIES",
    "MAX_BACKOFF_SECONDS",
    "RetryPolicy",
    "backoff_delay",
    "execute_with_retry",
]

"""
Transient-error classifier.

Decides whether a failure is worth retrying. Classification runs in order of
confidence:

    1. Cancellation anywhere in the cause chain: never retryable.
    2. Structured status codes (429, 503, 504) from Graph or httpx responses.
    3. Transport failures recognised by type (httpx timeouts and network
       errors, builtin ConnectionError).
    4. Best-effort scan of the error text for known transient phrases.

Step 4 couples us to the wording of whatever library raised the error. It
exists because some failures reach us only as text; prefer adding a typed
rule above over growing the phrase list.

Usage:
    from graphtool.resilience.classifier import is_retryable

    if is_retryable(err):
        ...
"""

from __future__ import annotations

import asyncio

import httpx

from graphtool.errors import (
    GraphAPIError,
    OperationCancelledError,
    RetryCancelledError,
    iter_error_chain,
)


RETRYABLE_STATUS_CODES = frozenset({429, 503, 504})

TRANSIENT_PHRASES = (
    "timeout",
    "connection reset",
    "connection refused",
    "temporary failure",
    "try again",
    "i/o timeout",
    "no such host",
    "network is unreachable",
)

_CANCELLATION_TYPES = (OperationCancelledError, RetryCancelledError, asyncio.CancelledError)
_TRANSPORT_TYPES = (httpx.TimeoutException, httpx.NetworkError, ConnectionError)


def _status_code(error: BaseException) -> int | None:
    if isinstance(error, GraphAPIError):
        return error.status_code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def is_cancellation(error: BaseException | None) -> bool:
    """True when the error is, or wraps, a cancellation or deadline signal."""
    return any(isinstance(e, _CANCELLATION_TYPES) for e in iter_error_chain(error))


def has_transient_phrase(message: str) -> bool:
    lowered = message.lower()
    return any(phrase in lowered for phrase in TRANSIENT_PHRASES)


def is_retryable(error: BaseException | None) -> bool:
    """
    Decide whether ``error`` is transient.

    Total and side-effect free: any failure while inspecting the error
    classifies it as permanent.

    Args:
        error: The failure to classify (None means nothing failed)

    Returns:
        True if repeating the same call may succeed
    """
    if error is None:
        return False

    try:
        chain = list(iter_error_chain(error))

        if any(isinstance(e, _CANCELLATION_TYPES) for e in chain):
            return False

        for e in chain:
            if _status_code(e) in RETRYABLE_STATUS_CODES:
                return True
            if isinstance(e, _TRANSPORT_TYPES):
                return True

        return has_transient_phrase(str(error))
    except Exception:
        return False


__all__ = [
    "RETRYABLE_STATUS_CODES",
    "TRANSIENT_PHRASES",
    "has_transient_phrase",
    "is_cancellation",
    "is_retryable",
]

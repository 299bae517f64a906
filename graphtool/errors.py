"""
Exception hierarchy for GraphTool.

Wrapping a failure is expressed with exception chaining: the wrapper's
``__cause__`` is the wrapped error. ``iter_error_chain`` and ``find_in_chain``
walk that chain so callers can ask "is this (or anything it wraps) a
cancellation?" without caring how many layers of context were added.

Usage:
    from graphtool.errors import GraphAPIError, find_in_chain

    api_error = find_in_chain(err, GraphAPIError)
    if api_error is not None and api_error.status_code == 429:
        ...
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, TypeVar


E = TypeVar("E", bound=BaseException)

# Guards against pathological self-referencing chains
_MAX_CHAIN_DEPTH = 32


class GraphToolError(Exception):
    """Base class for all errors raised by GraphTool."""


class ConfigError(GraphToolError):
    """Configuration is missing or invalid."""


class AuthenticationError(GraphToolError):
    """Access token could not be acquired."""


class AuditLogClosedError(GraphToolError):
    """A row was written to an audit sink after it was closed."""


# =============================================================================
# Remote Service Errors
# =============================================================================


class GraphAPIError(GraphToolError):
    """
    Structured error response from Microsoft Graph.

    Graph reports failures as an OData payload::

        {"error": {"code": "TooManyRequests", "message": "..."}}

    Args:
        status_code: HTTP status of the response
        code: OData error code ("" when the body carried none)
        message: OData error message
        headers: Response headers (case-insensitive mapping; httpx.Headers
            in practice so repeated values are preserved)
    """

    def __init__(
        self,
        status_code: int,
        code: str = "",
        message: str = "",
        headers: Mapping[str, Any] | None = None,
    ):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.headers = headers if headers is not None else {}
        text = f"{message} (HTTP {status_code})" if message else f"HTTP {status_code}"
        super().__init__(f"{code}: {text}" if code else text)


# =============================================================================
# Cancellation
# =============================================================================


class OperationCancelledError(GraphToolError):
    """The caller asked for the work to stop."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceededError(OperationCancelledError):
    """The caller's deadline passed before the work finished."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


# =============================================================================
# Retry Outcomes
# =============================================================================


class RetryCancelledError(GraphToolError):
    """Cancellation arrived while waiting between attempts."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"retry cancelled: {cause}")


class RetryExhaustedError(GraphToolError):
    """Every allowed attempt failed with a retryable error."""

    def __init__(self, retries: int, last_error: BaseException):
        self.retries = retries
        self.last_error = last_error
        super().__init__(f"operation failed after {retries} retries: {last_error}")


# =============================================================================
# Enriched Errors
# =============================================================================


class EnrichedError(GraphToolError):
    """
    A service failure with an added human-readable explanation.

    The original error stays reachable both as ``original`` and through
    ``__cause__``, so chain lookups on the original type still match.
    """

    def __init__(
        self,
        explanation: str,
        original: BaseException,
        operation: str,
        code: str,
        retry_after: int | None = None,
    ):
        self.explanation = explanation
        self.original = original
        self.operation = operation
        self.code = code
        self.retry_after = retry_after
        super().__init__(f"{explanation}: {original}")
        self.__cause__ = original


class RateLimitError(EnrichedError):
    """Graph throttled the request."""


class ServiceUnavailableError(EnrichedError):
    """Graph was temporarily unable to serve the request."""


# =============================================================================
# Chain Helpers
# =============================================================================


def iter_error_chain(error: BaseException | None) -> Iterator[BaseException]:
    """
    Yield ``error`` followed by every error it explicitly wraps.

    Only ``__cause__`` (set by ``raise ... from``) is followed. An error
    raised while handling another one does not wrap it: its implicit
    ``__context__`` is ignored.
    """
    seen: set[int] = set()
    current = error
    depth = 0
    while current is not None and id(current) not in seen and depth < _MAX_CHAIN_DEPTH:
        yield current
        seen.add(id(current))
        depth += 1
        current = current.__cause__


def find_in_chain(
    error: BaseException | None, types: type[E] | tuple[type[E], ...]
) -> E | None:
    """Return the first error in the chain that is an instance of ``types``."""
    for candidate in iter_error_chain(error):
        if isinstance(candidate, types):
            return candidate
    return None


__all__ = [
    "AuditLogClosedError",
    "AuthenticationError",
    "ConfigError",
    "DeadlineExceededError",
    "EnrichedError",
    "GraphAPIError",
    "GraphToolError",
    "OperationCancelledError",
    "RateLimitError",
    "RetryCancelledError",
    "RetryExhaustedError",
    "ServiceUnavailableError",
    "find_in_chain",
    "iter_error_chain",
]

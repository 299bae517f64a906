"""
Graph error enrichment.

Turns well-known Graph service error codes into failures a person can act
on. Rate limiting gets the server's Retry-After guidance and remediation
advice; service unavailability gets an explanation naming the operation.
Everything else passes through untouched.

Usage:
    from graphtool.resilience.enricher import enrich_error

    try:
        await execute_with_retry(call, policy, token)
    except Exception as e:
        error = enrich_error(e, "listEvents")
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from graphtool.errors import (
    GraphAPIError,
    RateLimitError,
    ServiceUnavailableError,
    find_in_chain,
)
from graphtool.logging_config import get_logger


logger = get_logger(__name__)

RATE_LIMIT_CODES = frozenset({"TooManyRequests", "activityLimitReached"})
UNAVAILABLE_CODES = frozenset({"ServiceUnavailable", "GatewayTimeout"})

REMEDIATION_ADVICE = (
    "Consider: 1) Reducing request frequency, "
    "2) Implementing exponential backoff, "
    "3) Reviewing API throttling limits"
)


def first_header_value(headers: Mapping[str, Any] | None, name: str) -> str | None:
    """
    Return the first value of a response header, or None.

    Accepts httpx.Headers (repeated headers kept via ``get_list``) as well
    as plain mappings whose values are strings or lists of strings.
    """
    if not headers:
        return None

    if hasattr(headers, "get_list"):
        values = list(headers.get_list(name))
    else:
        value = None
        for key, candidate in headers.items():
            if key.lower() == name.lower():
                value = candidate
                break
        if value is None:
            return None
        values = list(value) if isinstance(value, (list, tuple)) else [value]

    for value in values:
        text = str(value).strip()
        if text:
            return text
    return None


def _parse_seconds(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        seconds = int(value)
    except ValueError:
        # HTTP-date form of Retry-After is shown verbatim but not parsed
        return None
    return seconds if seconds >= 0 else None


def enrich_error(
    error: BaseException | None,
    operation: str,
    log: Any = None,
) -> BaseException | None:
    """
    Add actionable context to a Graph failure.

    Never raises. If anything goes wrong while inspecting the error, the
    original is returned unchanged.

    Args:
        error: The failure to enrich (may be None)
        operation: Name of the operation that failed, e.g. "listEvents"
        log: Logger for diagnostics (defaults to this module's logger)

    Returns:
        None for None, a RateLimitError / ServiceUnavailableError wrapping
        ``error`` for known codes, otherwise ``error`` itself
    """
    if error is None:
        return None

    log = log or logger

    try:
        api_error = find_in_chain(error, GraphAPIError)
        if api_error is None or not api_error.code:
            return error

        code = api_error.code

        if code in RATE_LIMIT_CODES:
            log.warning(f"Graph API rate limit exceeded during {operation} (code: {code})")

            retry_after = first_header_value(api_error.headers, "Retry-After")
            if retry_after is not None:
                log.info(
                    f"Rate limit retry guidance available: retry after {retry_after} seconds"
                )

            explanation = f"rate limit exceeded during {operation}"
            if retry_after is not None:
                explanation += f" (retry after {retry_after} seconds)"
            explanation += f". {REMEDIATION_ADVICE}"

            return RateLimitError(
                explanation,
                original=error,
                operation=operation,
                code=code,
                retry_after=_parse_seconds(retry_after),
            )

        if code in UNAVAILABLE_CODES:
            log.warning(
                f"Graph API service error during {operation} "
                f"(code: {code}, message: {api_error.message})"
            )
            return ServiceUnavailableError(
                f"service temporarily unavailable during {operation} (code: {code})",
                original=error,
                operation=operation,
                code=code,
            )

        log.debug(
            f"Graph API error during {operation} (code: {code}, message: {api_error.message})"
        )
        return error
    except Exception:
        return error


__all__ = [
    "RATE_LIMIT_CODES",
    "REMEDIATION_ADVICE",
    "UNAVAILABLE_CODES",
    "enrich_error",
    "first_header_value",
]

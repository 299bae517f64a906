"""
Shared plumbing for action handlers.

``ActionContext`` bundles everything one action run needs: the Graph
client, the effective configuration, the retry policy, the audit sink and
the cancellation token. ``call_remote`` is the single path by which a
handler reaches the service.
"""

from __future__ import annotations

import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TextIO, TypeVar

import httpx

from graphtool.audit.sink import AuditSink
from graphtool.errors import GraphToolError, RetryCancelledError, find_in_chain
from graphtool.logging_config import get_logger
from graphtool.resilience.cancellation import CancellationToken
from graphtool.resilience.enricher import enrich_error
from graphtool.resilience.retry import RetryPolicy, execute_with_retry


logger = get_logger(__name__)

T = TypeVar("T")

# Failures a handler reports as an unsuccessful result instead of raising
REMOTE_FAILURES = (GraphToolError, httpx.HTTPError)


@dataclass
class ActionContext:
    client: Any
    config: Any
    policy: RetryPolicy
    audit: AuditSink
    cancel: CancellationToken | None = None
    out: TextIO = field(default_factory=lambda: sys.stdout)

    @property
    def text_output(self) -> bool:
        return self.config.output == "text"

    def echo(self, text: str = "") -> None:
        """Print to the console in text mode (JSON mode prints one document at the end)."""
        if self.text_output:
            print(text, file=self.out)

    def verbose(self, text: str) -> None:
        if self.config.verbose and self.text_output:
            print(f"[VERBOSE] {text}", file=self.out)


class RemoteCallFailed(Exception):
    """Internal signal carrying an enriched failure back to a handler."""

    def __init__(self, error: BaseException):
        self.error = error
        super().__init__(str(error))

    @property
    def cancelled(self) -> bool:
        return find_in_chain(self.error, RetryCancelledError) is not None


async def call_remote(
    ctx: ActionContext,
    operation: str,
    call: Callable[[], Awaitable[T]],
    *,
    retry: bool = True,
) -> T:
    """
    Run one remote call, with retries unless ``retry`` is False.

    Calls that are not safe to repeat (sending mail, creating events) pass
    ``retry=False`` and get a single attempt.

    Raises:
        RemoteCallFailed: Wrapping the enriched failure
    """
    try:
        if retry:
            return await execute_with_retry(call, ctx.policy, ctx.cancel)
        return await call()
    except REMOTE_FAILURES as e:
        raise RemoteCallFailed(enrich_error(e, operation)) from e


def failure_result(action: str, error: BaseException, **extra: Any) -> dict[str, Any]:
    result = {"success": False, "action": action, "error": str(error)}
    if find_in_chain(error, RetryCancelledError) is not None:
        result["cancelled"] = True
    result.update(extra)
    return result


__all__ = [
    "REMOTE_FAILURES",
    "ActionContext",
    "RemoteCallFailed",
    "call_remote",
    "failure_result",
]

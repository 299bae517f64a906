"""
Cooperative cancellation for long-running work.

A ``CancellationToken`` is owned by whoever may decide to stop the work (the
CLI's signal handlers, a test, a deadline timer) and observed by the retry
executor at its only suspension point, the delay between attempts.

Usage:
    token = CancellationToken()
    loop.add_signal_handler(signal.SIGINT, token.cancel)

    # Or bound the overall wall-clock time
    token = CancellationToken.with_timeout(30.0)
"""

from __future__ import annotations

import asyncio

from graphtool.errors import DeadlineExceededError, OperationCancelledError


class CancellationToken:
    """
    One-shot cancellation signal.

    Once cancelled a token stays cancelled; later calls to ``cancel`` do not
    replace the first reason.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._error: OperationCancelledError | None = None
        self._timer: asyncio.TimerHandle | None = None

    @classmethod
    def with_timeout(cls, seconds: float) -> CancellationToken:
        """
        Create a token that cancels itself with a deadline error.

        Must be called from inside a running event loop.
        """
        token = cls()
        loop = asyncio.get_running_loop()
        token._timer = loop.call_later(seconds, token._expire)
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def error(self) -> OperationCancelledError | None:
        """The reason for cancellation, or None while still active."""
        return self._error

    def cancel(self, error: OperationCancelledError | None = None) -> None:
        if self._event.is_set():
            return
        self._error = error or OperationCancelledError()
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _expire(self) -> None:
        self._timer = None
        self.cancel(DeadlineExceededError())

    async def wait(self) -> OperationCancelledError:
        """Suspend until the token is cancelled and return the reason."""
        await self._event.wait()
        if self._error is None:
            self._error = OperationCancelledError()
        return self._error

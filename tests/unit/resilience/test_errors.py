"""Tests for graphtool/errors.py"""

from graphtool.errors import (
    GraphAPIError,
    OperationCancelledError,
    RateLimitError,
    RetryExhaustedError,
    find_in_chain,
    iter_error_chain,
)


class TestGraphAPIError:
    def test_message_with_code(self):
        assert str(GraphAPIError(429, "TooManyRequests", "Slow down")) == (
            "TooManyRequests: Slow down (HTTP 429)"
        )

    def test_message_without_body(self):
        assert str(GraphAPIError(503)) == "HTTP 503"
        assert str(GraphAPIError(503, "ServiceUnavailable")) == "ServiceUnavailable: HTTP 503"


class TestChain:
    def test_follows_cause(self):
        inner = GraphAPIError(503, "ServiceUnavailable", "busy")
        outer = RetryExhaustedError(3, inner)
        outer.__cause__ = inner

        assert list(iter_error_chain(outer)) == [outer, inner]
        assert find_in_chain(outer, GraphAPIError) is inner

    def test_ignores_implicit_context(self):
        try:
            try:
                raise OperationCancelledError()
            except OperationCancelledError:
                raise ValueError("while cleaning up")
        except ValueError as e:
            outer = e

        assert outer.__context__ is not None
        assert list(iter_error_chain(outer)) == [outer]
        assert find_in_chain(outer, OperationCancelledError) is None

    def test_suppressed_context_ignored(self):
        try:
            try:
                raise OperationCancelledError()
            except OperationCancelledError:
                raise ValueError("replaced") from None
        except ValueError as e:
            outer = e

        assert find_in_chain(outer, OperationCancelledError) is None

    def test_cycle_terminates(self):
        a = ValueError("a")
        b = ValueError("b")
        a.__cause__ = b
        b.__cause__ = a
        assert list(iter_error_chain(a)) == [a, b]

    def test_none(self):
        assert list(iter_error_chain(None)) == []
        assert find_in_chain(None, GraphAPIError) is None

    def test_enriched_error_keeps_original(self):
        original = GraphAPIError(429, "TooManyRequests", "x")
        enriched = RateLimitError("rate limit exceeded", original, "listEvents", "TooManyRequests")
        assert find_in_chain(enriched, GraphAPIError) is original
        assert str(enriched) == f"rate limit exceeded: {original}"

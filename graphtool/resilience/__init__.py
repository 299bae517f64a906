"""
Resilient execution for remote calls.

Components:
    cancellation.py: CancellationToken observed between attempts
    classifier.py: is_retryable, transient vs permanent failures
    enricher.py: enrich_error, actionable messages for Graph service codes
    retry.py: RetryPolicy and execute_with_retry (exponential backoff)
"""

from graphtool.resilience.cancellation import CancellationToken
from graphtool.resilience.classifier import is_cancellation, is_retryable
from graphtool.resilience.enricher import enrich_error
from graphtool.resilience.retry import (
    MAX_BACKOFF_SECONDS,
    RetryPolicy,
    backoff_delay,
    execute_with_retry,
)


__all__ = [
    "MAX_BACKOFF_SECONDS",
    "CancellationToken",
    "RetryPolicy",
    "backoff_delay",
    "enrich_error",
    "execute_with_retry",
    "is_cancellation",
    "is_retryable",
]

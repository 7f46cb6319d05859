"""Execution module for chartlink.

Provides classes for request execution, error classification and backoff.
"""

from chartlink.core.execution.backoff import linear_backoff
from chartlink.core.execution.error_classifier import ErrorClassifier, NormalizedError
from chartlink.core.execution.request_executor import RequestExecutor

__all__ = ["ErrorClassifier", "NormalizedError", "RequestExecutor", "linear_backoff"]

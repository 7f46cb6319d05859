"""Retry configuration for chartlink.

Per-call request policy and error categories for retry decisions.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from chartlink.core.execution.error_classifier import NormalizedError


class ErrorCategory(str, Enum):
    """Error categories for classification and log context.

    - TRANSIENT: Temporary errors (network failures, timeouts, 5xx)
    - RATE_LIMIT: Rate limiting errors (429)
    - PERMANENT: Permanent errors (400, 401, 403, 404, ...)
    - UNKNOWN: Anything else (e.g. a status outside 4xx/5xx)
    """

    TRANSIENT = "transient"
    RATE_LIMIT = "rate_limit"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


def default_retry_predicate(error: "NormalizedError") -> bool:
    """Retry on network errors or 5xx server errors."""
    return error.status is None or error.status >= 500


@dataclass
class RequestPolicy:
    """Timeout and retry behavior for one logical request.

    Total attempts are ``max_retries + 1``.
    """

    timeout: float = 10.0  # seconds, per attempt
    max_retries: int = 3
    retry_delay: float = 1.0  # seconds, base for backoff
    retry_predicate: Callable[["NormalizedError"], bool] = field(
        default=default_retry_predicate
    )

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")

    def merged(self, **overrides) -> "RequestPolicy":
        """Return a copy with the given non-None fields replaced.

        Raises:
            TypeError: If an override does not name a policy field
        """
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown policy fields: {', '.join(sorted(unknown))}")

        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

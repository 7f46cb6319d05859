"""chartlink - resilient chart embedding and backend API access.

Two contracts for UI callers:
- ChartIdentityCache.get_current_url: resolve the URL to serve for an embedded chart
- RequestExecutor.get/post/put/patch/delete: backend calls with timeout and retry
"""

from chartlink.config import Config, config
from chartlink.core.caching import (
    ChartIdentityCache,
    clean_chart_url,
    generate_iframe_html,
    get_current_chart_url,
    get_default_cache,
    parse_chart_url,
)
from chartlink.core.execution import (
    ErrorClassifier,
    NormalizedError,
    RequestExecutor,
    linear_backoff,
)
from chartlink.core.retry_config import ErrorCategory, RequestPolicy, default_retry_predicate
from chartlink.models import RefreshResult, ResourceUrlInfo

__all__ = [
    # Configuration
    "Config",
    "config",
    # Chart identity
    "ChartIdentityCache",
    "ResourceUrlInfo",
    "RefreshResult",
    "get_default_cache",
    "parse_chart_url",
    "get_current_chart_url",
    "clean_chart_url",
    "generate_iframe_html",
    # Requests
    "RequestExecutor",
    "RequestPolicy",
    "NormalizedError",
    "ErrorClassifier",
    "ErrorCategory",
    "default_retry_predicate",
    "linear_backoff",
]

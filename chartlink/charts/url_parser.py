"""Chart URL parsing for chartlink.

Extracts the chart identifier, base URL and query parameters from a bare URL
or from an HTML snippet containing an iframe.
"""

import html
import re
from datetime import datetime
from typing import Optional
from urllib.parse import parse_qsl, urlsplit

from chartlink.models.chart import ResourceUrlInfo

IFRAME_SRC_PATTERN = re.compile(r"""src=["']([^"']+)["']""", re.IGNORECASE)

# Priority order, first match wins
CHART_PATH_PATTERNS = [
    re.compile(r"/explore/p/([^/?]+)"),
    re.compile(r"/superset/explore/p/([^/?]+)"),
    re.compile(r"/chart/([^/?]+)"),
    re.compile(r"/embedded/([^/?]+)"),
]


def extract_source_url(value: str) -> str:
    """Return the iframe ``src`` from an HTML snippet, or the trimmed input.

    Returns an empty string when an iframe carries no ``src``.
    """
    if "<iframe" in value.lower():
        match = IFRAME_SRC_PATTERN.search(value)
        return html.unescape(match.group(1)).strip() if match else ""
    return value.strip()


def extract_resource_id(path: str) -> Optional[str]:
    """Match ``path`` against CHART_PATH_PATTERNS in order."""
    for pattern in CHART_PATH_PATTERNS:
        match = pattern.search(path)
        if match:
            return match.group(1)
    return None


def format_base_url(scheme: str, hostname: str, port: Optional[int]) -> str:
    if ":" in hostname:
        hostname = f"[{hostname}]"
    if port is not None:
        return f"{scheme}://{hostname}:{port}"
    return f"{scheme}://{hostname}"


def parse_resource_url(value: str, now: Optional[datetime] = None) -> Optional[ResourceUrlInfo]:
    """Parse a chart URL or iframe snippet.

    Pure function: nothing is cached here (see ChartIdentityCache.parse).

    Args:
        value: Bare URL or HTML containing ``<iframe ... src="URL">``
        now: Timestamp for ``last_updated`` (defaults to datetime.now())

    Returns:
        ResourceUrlInfo, or None when the input is not an absolute URL or
        no chart identifier pattern matches
    """
    source_url = extract_source_url(value)
    if not source_url:
        return None

    try:
        parts = urlsplit(source_url)
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None

    resource_id = extract_resource_id(parts.path)
    if not resource_id:
        return None

    return ResourceUrlInfo(
        original_url=source_url,
        current_url=source_url,
        resource_id=resource_id,
        base_url=format_base_url(parts.scheme, parts.hostname, port),
        parameters=dict(parse_qsl(parts.query, keep_blank_values=True)),
        last_updated=now or datetime.now(),
        is_valid=True,
    )

"""Embedding helpers for chartlink.

Normalizes chart URLs for iframe embedding and renders the iframe markup.
"""

from typing import List, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

DEFAULT_EMBED_HEIGHT = "400"
DEFAULT_IFRAME_WIDTH = 600
DEFAULT_IFRAME_HEIGHT = 400

IFRAME_TEMPLATE = (
    '<iframe width="{width}" height="{height}" seamless frameBorder="0" '
    'scrolling="no" src="{src}"></iframe>'
)


def _set_param(params: List[Tuple[str, str]], key: str, value: str) -> List[Tuple[str, str]]:
    """Replace the first ``key`` in place and drop any later duplicates, or append."""
    result = []
    replaced = False
    for name, current in params:
        if name != key:
            result.append((name, current))
        elif not replaced:
            result.append((name, value))
            replaced = True
    if not replaced:
        result.append((key, value))
    return result


def normalize_embed_url(url: str) -> str:
    """Force ``standalone=1`` and default ``height`` to 400 on an absolute URL."""
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)
    params = _set_param(params, "standalone", "1")
    if not any(name == "height" for name, _ in params):
        params.append(("height", DEFAULT_EMBED_HEIGHT))
    return urlunsplit(parts._replace(query=urlencode(params)))


def render_iframe(src: str, width: int = DEFAULT_IFRAME_WIDTH, height: int = DEFAULT_IFRAME_HEIGHT) -> str:
    return IFRAME_TEMPLATE.format(width=width, height=height, src=src)

"""Chart URL parsing and embedding helpers."""

from chartlink.charts.embedding import normalize_embed_url, render_iframe
from chartlink.charts.url_parser import parse_resource_url

__all__ = ["normalize_embed_url", "parse_resource_url", "render_iframe"]

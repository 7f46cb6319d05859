"""Chart identity cache for chartlink.

Tracks embedded chart URLs whose identifiers can change upstream, and keeps
previously distributed URLs resolving to working content.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from chartlink.charts.embedding import (
    DEFAULT_IFRAME_HEIGHT,
    DEFAULT_IFRAME_WIDTH,
    normalize_embed_url,
    render_iframe,
)
from chartlink.charts.url_parser import parse_resource_url
from chartlink.config import Config
from chartlink.core.execution.request_executor import RequestExecutor
from chartlink.core.logging import logger
from chartlink.models.chart import RefreshResult, ResourceUrlInfo

PROBE_PATH = "/superset/explore/p/{resource_id}/"


class ChartIdentityCache:
    """Keyed store of chart URL metadata with a staleness policy.

    Never raises to its callers: parse and probe failures degrade to the
    cached or original URL. Entries are only removed by ``evict`` or ``clear``.
    """

    def __init__(
        self,
        executor: Optional[RequestExecutor] = None,
        refresh_interval: Optional[timedelta] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize ChartIdentityCache.

        Args:
            executor: RequestExecutor used for existence probes
            refresh_interval: Age after which an entry is re-validated
                (defaults to Config.refresh_interval())
            clock: Returns the current time
        """
        self._executor = executor
        self.refresh_interval = (
            refresh_interval
            if refresh_interval is not None
            else timedelta(seconds=Config.refresh_interval())
        )
        self._clock = clock
        self._entries: Dict[str, ResourceUrlInfo] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def executor(self) -> RequestExecutor:
        if self._executor is None:
            self._executor = RequestExecutor()
        return self._executor

    def parse(self, value: str) -> Optional[ResourceUrlInfo]:
        """Parse a chart URL or iframe snippet and populate the cache.

        Parsing doubles as cache population: the first successful parse of an
        identifier creates its entry. Existing entries are left untouched.

        Args:
            value: Bare URL or HTML containing an iframe

        Returns:
            ResourceUrlInfo for ``value``, or None if it is not a chart URL
        """
        info = parse_resource_url(value, now=self._clock())
        if info is None:
            logger.warning("chart_url_parse_failed", value=value[:200])
            return None

        if info.resource_id not in self._entries:
            self._entries[info.resource_id] = info.model_copy(deep=True)
            logger.debug("chart_url_cached", resource_id=info.resource_id)
        return info

    def needs_refresh(self, entry: Optional[ResourceUrlInfo], force_refresh: bool = False) -> bool:
        if force_refresh or entry is None:
            return True
        return self._clock() - entry.last_updated > self.refresh_interval

    async def get_current_url(self, original_url: str, force_refresh: bool = False) -> str:
        """Return the URL that should currently be served for a chart.

        Args:
            original_url: Any URL (or iframe snippet) previously issued for the chart
            force_refresh: Probe even if the entry is fresh

        Returns:
            Cached current URL, or ``original_url`` when it cannot be parsed
        """
        info = self.parse(original_url)
        if info is None:
            return original_url

        resource_id = info.resource_id
        lock = self._locks.setdefault(resource_id, asyncio.Lock())
        async with lock:
            # Re-read under the lock, a concurrent caller may have refreshed it
            entry = self._entries.get(resource_id)
            if self.needs_refresh(entry, force_refresh):
                result = await self.refresh(resource_id)
                if result.success and result.new_url:
                    return result.new_url

        entry = self._entries.get(resource_id)
        return entry.current_url if entry else original_url

    async def refresh(self, resource_id: str) -> RefreshResult:
        """Probe the origin for a cached chart.

        An unreachable origin only marks the entry invalid; the cached URL is
        still returned so a previously working embed keeps rendering.
        """
        entry = self._entries.get(resource_id)
        if entry is None:
            return RefreshResult(success=False, error="Chart not found in cache")

        probe_url = entry.base_url + PROBE_PATH.format(resource_id=entry.resource_id)
        reachable = await self.executor.check_reachable(probe_url)

        entry.last_updated = max(entry.last_updated, self._clock())
        entry.is_valid = reachable
        if reachable:
            logger.debug("chart_url_verified", resource_id=resource_id)
        else:
            logger.warning(
                "chart_url_unverified",
                resource_id=resource_id,
                probe_url=probe_url,
                serving=entry.current_url,
            )

        return RefreshResult(success=True, new_url=entry.current_url, info=entry)

    def update_identity(self, old_resource_id: str, new_url: str) -> bool:
        """Point an existing chart entry at a regenerated URL.

        The same entry stays reachable under the old identifier, so links
        issued before the rotation keep resolving.

        Returns:
            False if ``new_url`` is not a chart URL, True otherwise
        """
        new_info = self.parse(new_url)
        if new_info is None:
            return False

        entry = self._entries.get(old_resource_id)
        if entry is not None:
            entry.current_url = new_info.current_url
            entry.resource_id = new_info.resource_id
            entry.base_url = new_info.base_url
            entry.parameters = dict(new_info.parameters)
            entry.last_updated = max(entry.last_updated, self._clock())
            entry.is_valid = True

            self._entries[old_resource_id] = entry
            self._entries[new_info.resource_id] = entry
            logger.info(
                "chart_identity_updated",
                old_resource_id=old_resource_id,
                new_resource_id=new_info.resource_id,
            )

        return True

    def get(self, resource_id: str) -> Optional[ResourceUrlInfo]:
        return self._entries.get(resource_id)

    def evict(self, resource_id: str) -> None:
        """Remove a single key. Other keys sharing the entry are kept."""
        if self._entries.pop(resource_id, None) is not None:
            logger.debug("chart_cache_evicted", resource_id=resource_id)
        self._locks.pop(resource_id, None)

    def clear(self) -> None:
        """Remove all cached chart entries."""
        self._entries.clear()
        self._locks.clear()

    def snapshot(self) -> List[ResourceUrlInfo]:
        """Return copies of all entries, one per key."""
        return [entry.model_copy(deep=True) for entry in self._entries.values()]

    def clean_for_embedding(self, value: str) -> str:
        """Normalize a chart URL for embedding, or return ``value`` unchanged."""
        info = self.parse(value)
        if info is None:
            return value
        return normalize_embed_url(info.current_url)

    def to_iframe_markup(
        self,
        url: str,
        width: int = DEFAULT_IFRAME_WIDTH,
        height: int = DEFAULT_IFRAME_HEIGHT,
    ) -> str:
        return render_iframe(self.clean_for_embedding(url), width=width, height=height)

    def get_cache_stats(self) -> Dict[str, object]:
        """Get cache statistics.

        Returns:
            Dictionary with key count, distinct entry count and refresh interval
        """
        return {
            "keys": len(self._entries),
            "entries": len({id(entry) for entry in self._entries.values()}),
            "refresh_interval_seconds": self.refresh_interval.total_seconds(),
        }


_default_cache: Optional[ChartIdentityCache] = None


def get_default_cache() -> ChartIdentityCache:
    """Get the lazily created process-wide cache."""
    global _default_cache
    if _default_cache is None:
        _default_cache = ChartIdentityCache()
    return _default_cache


# Convenience wrappers over the default cache
def parse_chart_url(value: str) -> Optional[ResourceUrlInfo]:
    return get_default_cache().parse(value)


async def get_current_chart_url(original_url: str, force_refresh: bool = False) -> str:
    return await get_default_cache().get_current_url(original_url, force_refresh)


def clean_chart_url(value: str) -> str:
    return get_default_cache().clean_for_embedding(value)


def generate_iframe_html(
    chart_url: str,
    width: int = DEFAULT_IFRAME_WIDTH,
    height: int = DEFAULT_IFRAME_HEIGHT,
) -> str:
    return get_default_cache().to_iframe_markup(chart_url, width, height)

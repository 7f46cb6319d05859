"""Models for chartlink."""

from chartlink.models.chart import RefreshResult, ResourceUrlInfo

__all__ = ["RefreshResult", "ResourceUrlInfo"]

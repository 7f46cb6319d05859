"""Chart identity models for chartlink."""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResourceUrlInfo(BaseModel):
    """Tracked URL metadata for one embeddable chart."""

    model_config = ConfigDict(validate_assignment=True)

    original_url: str = Field(..., description="First URL ever supplied for this chart")
    current_url: str = Field(..., description="URL currently considered authoritative")
    resource_id: str = Field(..., min_length=1, description="Canonical chart identifier")
    base_url: str = Field(..., description="Scheme and host of current_url")
    parameters: Dict[str, str] = Field(default_factory=dict)
    last_updated: datetime
    is_valid: bool = True

    @field_validator("current_url")
    @classmethod
    def _require_absolute(cls, value: str) -> str:
        parts = urlsplit(value)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"URL must be absolute: {value!r}")
        return value


@dataclass
class RefreshResult:
    """Outcome of an existence probe for a cached chart."""

    success: bool
    new_url: Optional[str] = None
    error: Optional[str] = None
    info: Optional[ResourceUrlInfo] = None

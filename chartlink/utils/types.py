"""Type definitions for chartlink results.

TypedDict classes describing the JSON shapes exchanged with the backend.
"""

from typing import Any, Optional, TypedDict


class ApiResponse(TypedDict, total=False):
    """Structured result returned by the backend API."""

    success: bool
    data: Any
    error: str
    message: str


class NormalizedErrorData(TypedDict, total=False):
    """Serialized NormalizedError."""

    message: str
    status: Optional[int]
    code: Optional[str]
    details: Any

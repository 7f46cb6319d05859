"""Utility modules for chartlink."""

from chartlink.utils.types import ApiResponse, NormalizedErrorData

__all__ = ["ApiResponse", "NormalizedErrorData"]

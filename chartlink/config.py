"""Configuration management for chartlink.

Centralizes all environment variable access for better testability and maintainability.
"""

import os

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_TIMEOUT = 10.0  # seconds
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds
DEFAULT_REFRESH_INTERVAL = 300.0  # 5 minutes


def _env_number(name: str, default: float, cast=float):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        # Imported lazily, logging reads the level from this module
        from chartlink.core.logging import logger

        logger.warning("config_value_invalid", name=name, value=raw, default=default)
        return default


class Config:
    """Application configuration loaded from environment variables."""

    # Backend API
    @staticmethod
    def api_url() -> str:
        """Get the base URL relative request paths are resolved against."""
        return os.environ.get("CHARTLINK_API_URL") or DEFAULT_API_URL

    @staticmethod
    def request_timeout() -> float:
        """Get the per-attempt request timeout in seconds."""
        return _env_number("CHARTLINK_REQUEST_TIMEOUT", DEFAULT_TIMEOUT)

    @staticmethod
    def max_retries() -> int:
        """Get the default number of retries after the first attempt."""
        return _env_number("CHARTLINK_MAX_RETRIES", DEFAULT_MAX_RETRIES, int)

    @staticmethod
    def retry_delay() -> float:
        """Get the base backoff delay in seconds."""
        return _env_number("CHARTLINK_RETRY_DELAY", DEFAULT_RETRY_DELAY)

    # Chart cache
    @staticmethod
    def refresh_interval() -> float:
        """Get the chart URL staleness interval in seconds."""
        return _env_number("CHARTLINK_REFRESH_INTERVAL", DEFAULT_REFRESH_INTERVAL)

    # Logging
    @staticmethod
    def log_level() -> str:
        return (os.environ.get("CHARTLINK_LOG_LEVEL") or "INFO").upper()

    # Helper methods
    @staticmethod
    def default_policy(**overrides):
        """Build a RequestPolicy from environment defaults.

        Args:
            **overrides: RequestPolicy fields to replace

        Returns:
            RequestPolicy instance
        """
        from chartlink.core.retry_config import RequestPolicy

        policy = RequestPolicy(
            timeout=Config.request_timeout(),
            max_retries=Config.max_retries(),
            retry_delay=Config.retry_delay(),
        )
        return policy.merged(**overrides) if overrides else policy

    @staticmethod
    def get_invalid_config() -> list[str]:
        """Get list of numeric settings that fail validation."""
        invalid = []
        if Config.request_timeout() <= 0:
            invalid.append("CHARTLINK_REQUEST_TIMEOUT")
        if Config.max_retries() < 0:
            invalid.append("CHARTLINK_MAX_RETRIES")
        if Config.retry_delay() < 0:
            invalid.append("CHARTLINK_RETRY_DELAY")
        if Config.refresh_interval() < 0:
            invalid.append("CHARTLINK_REFRESH_INTERVAL")
        return invalid


# Singleton instance for easy access
config = Config()

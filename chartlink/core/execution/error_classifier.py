"""Error classifier for chartlink.

Turns any request failure (raised exception, timeout, non-2xx response) into a
NormalizedError, and categorizes NormalizedErrors for logging.
"""

import asyncio
from typing import Any, Optional

import httpx

from chartlink.core.retry_config import ErrorCategory
from chartlink.utils.types import NormalizedErrorData

TIMEOUT = "TIMEOUT"
NETWORK_ERROR = "NETWORK_ERROR"
HTTP_ERROR = "HTTP_ERROR"
INVALID_RESPONSE = "INVALID_RESPONSE"

GENERIC_MESSAGE = "An unexpected error occurred. Please try again."


class NormalizedError(Exception):
    """Uniform failure shape for every request error.

    ``status`` is only set when the server answered with an HTTP status.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def to_dict(self) -> NormalizedErrorData:
        """Serialize to ``{message, status?, code?, details?}``."""
        data: NormalizedErrorData = {"message": self.message}
        if self.status is not None:
            data["status"] = self.status
        if self.code is not None:
            data["code"] = self.code
        if self.details is not None:
            data["details"] = self.details
        return data

    def __repr__(self) -> str:
        return f"NormalizedError(message={self.message!r}, status={self.status!r}, code={self.code!r})"


class ErrorClassifier:
    """Builds and categorizes NormalizedErrors.

    Static methods for stateless classification.
    """

    @staticmethod
    def from_exception(error: BaseException, timeout: Optional[float] = None) -> NormalizedError:
        """Classify a raised exception. The result never carries a status.

        Args:
            error: Exception raised by the transport or the timeout race
            timeout: Timeout in seconds, used in the timeout message

        Returns:
            NormalizedError without status
        """
        if isinstance(error, NormalizedError):
            return error

        if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
            if timeout is not None:
                message = f"Request timeout after {timeout:g}s"
            else:
                message = str(error) or "Request timed out"
            return NormalizedError(message, code=TIMEOUT)

        if isinstance(error, httpx.HTTPError):
            return NormalizedError(str(error) or type(error).__name__, code=NETWORK_ERROR)

        return NormalizedError(str(error) or "Unknown error occurred")

    @staticmethod
    def from_response(response: httpx.Response) -> NormalizedError:
        """Classify a non-2xx response.

        The JSON error body is attached as ``details``; an unparseable body
        becomes an empty dict.
        """
        try:
            body = response.json()
        except ValueError:
            body = {}

        message = None
        if isinstance(body, dict) and body.get("error"):
            message = str(body["error"])
        if not message:
            message = f"HTTP {response.status_code}: {response.reason_phrase}"

        return NormalizedError(
            message,
            status=response.status_code,
            code=HTTP_ERROR,
            details=body,
        )

    @staticmethod
    def categorize(error: NormalizedError) -> ErrorCategory:
        """Categorize a NormalizedError into TRANSIENT, RATE_LIMIT, PERMANENT, or UNKNOWN."""
        if error.status is None or error.status >= 500:
            return ErrorCategory.TRANSIENT
        if error.status == 429:
            return ErrorCategory.RATE_LIMIT
        if 400 <= error.status < 500:
            return ErrorCategory.PERMANENT
        return ErrorCategory.UNKNOWN

    @staticmethod
    def user_message(error: Any) -> str:
        """Extract a displayable message from any error-like value.

        Args:
            error: NormalizedError, exception, mapping, or string

        Returns:
            Message string, or a generic fallback sentence
        """
        if isinstance(error, NormalizedError):
            return error.message or GENERIC_MESSAGE

        if isinstance(error, dict):
            if error.get("message"):
                return str(error["message"])
            if error.get("error"):
                return str(error["error"])
            details = error.get("details")
            if isinstance(details, dict) and details.get("error"):
                return str(details["error"])

        if isinstance(error, str) and error:
            return error

        if isinstance(error, BaseException) and str(error):
            return str(error)

        return GENERIC_MESSAGE

"""Request executor for chartlink.

Executes HTTP calls against the backend with timeout-bounded, backoff-governed retries.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlsplit

import httpx

from chartlink.config import Config
from chartlink.core.execution.backoff import linear_backoff
from chartlink.core.execution.error_classifier import (
    INVALID_RESPONSE,
    ErrorClassifier,
    NormalizedError,
)
from chartlink.core.logging import logger
from chartlink.core.retry_config import RequestPolicy

DEFAULT_HEADERS = {"Content-Type": "application/json"}


class RequestExecutor:
    """Runs one logical HTTP call as a bounded series of attempts.

    Each attempt is raced against ``policy.timeout``; a timed-out attempt is
    cancelled, which tears down the in-flight httpx request. Failures are
    classified into NormalizedError and retried while attempts remain and
    ``policy.retry_predicate`` allows it, waiting ``linear_backoff`` between
    attempts. The final error is raised, never swallowed.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        policy: Optional[RequestPolicy] = None,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize RequestExecutor.

        Args:
            base_url: Prefix for relative request paths (defaults to Config.api_url())
            policy: Default RequestPolicy (defaults to Config.default_policy())
            headers: Headers sent with every request
            client: httpx.AsyncClient to use; one is created and owned if omitted
            sleep: Coroutine used for backoff waits
        """
        self._base_url = base_url or Config.api_url()
        self.policy = policy or Config.default_policy()
        self.headers = dict(headers or {})
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._sleep = sleep

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_base_url(self, base_url: str) -> None:
        self._base_url = base_url

    async def aclose(self) -> None:
        """Close the underlying client if this executor created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def build_url(self, url: str, base_url: Optional[str] = None) -> str:
        """Use ``url`` as-is when it has a scheme, otherwise prefix the base URL."""
        if urlsplit(url).scheme:
            return url
        return f"{base_url or self._base_url}{url}"

    async def execute(
        self,
        url: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        base_url: Optional[str] = None,
        **overrides,
    ) -> Any:
        """Execute a request with retry.

        Args:
            url: Absolute URL or path relative to the base URL
            method: HTTP method
            body: JSON-serializable request body
            headers: Per-call headers, merged over instance and default headers
            base_url: Per-call base URL override
            **overrides: RequestPolicy fields (timeout, max_retries, retry_delay, retry_predicate)

        Returns:
            Decoded JSON body of the 2xx response (None for an empty body).
            Backend endpoints usually answer with the ApiResponse shape.


        Raises:
            NormalizedError: When the failure is not retryable or attempts are exhausted
        """
        policy = self.policy.merged(**overrides)
        full_url = self.build_url(url, base_url)
        method = method.upper()
        request_headers = httpx.Headers(DEFAULT_HEADERS)
        request_headers.update(self.headers)
        request_headers.update(headers or {})
        content = json.dumps(body) if body is not None else None
        total_attempts = policy.max_retries + 1

        for attempt in range(total_attempts):
            logger.debug(
                "api_request_attempt",
                url=full_url,
                method=method,
                attempt=attempt + 1,
                max_attempts=total_attempts,
            )

            try:
                response = await asyncio.wait_for(
                    self._client.request(
                        method,
                        full_url,
                        content=content,
                        headers=request_headers,
                        timeout=policy.timeout,
                    ),
                    timeout=policy.timeout,
                )
                if response.is_success:
                    result = self._decode(response)
                    logger.debug(
                        "api_request_succeeded",
                        url=full_url,
                        status=response.status_code,
                        attempt=attempt + 1,
                    )
                    return result
                error = ErrorClassifier.from_response(response)
            except NormalizedError as e:
                error = e
            except (asyncio.TimeoutError, httpx.HTTPError, httpx.InvalidURL) as e:
                error = ErrorClassifier.from_exception(e, timeout=policy.timeout)

            if attempt < policy.max_retries and policy.retry_predicate(error):
                delay = linear_backoff(attempt, policy.retry_delay)
                logger.warning(
                    "api_request_retry",
                    url=full_url,
                    method=method,
                    attempt=attempt + 1,
                    status=error.status,
                    category=ErrorClassifier.categorize(error).value,
                    error=error.message,
                    delay_seconds=delay,
                )
                await self._sleep(delay)
                continue

            logger.error(
                "api_request_failed",
                url=full_url,
                method=method,
                attempt=attempt + 1,
                max_attempts=total_attempts,
                status=error.status,
                category=ErrorClassifier.categorize(error).value,
                error=error.message,
            )
            raise error

        raise RuntimeError("Retry loop exited unexpectedly.")

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise NormalizedError(
                f"Invalid JSON response: {e}", code=INVALID_RESPONSE
            ) from e

    async def get(self, url: str, **kwargs) -> Any:
        return await self.execute(url, "GET", **kwargs)

    async def post(self, url: str, data: Any = None, **kwargs) -> Any:
        return await self.execute(url, "POST", body=data, **kwargs)

    async def put(self, url: str, data: Any = None, **kwargs) -> Any:
        return await self.execute(url, "PUT", body=data, **kwargs)

    async def patch(self, url: str, data: Any = None, **kwargs) -> Any:
        return await self.execute(url, "PATCH", body=data, **kwargs)

    async def delete(self, url: str, **kwargs) -> Any:
        return await self.execute(url, "DELETE", **kwargs)

    async def check_reachable(self, url: str, timeout: Optional[float] = None) -> bool:
        """Issue a HEAD request and report whether the origin answered.

        Any HTTP response counts as reachable, whatever its status. Transport
        errors and timeouts count as unreachable; neither is raised.
        """
        timeout = timeout or self.policy.timeout
        try:
            await asyncio.wait_for(self._client.head(url, timeout=timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("reachability_check_failed", url=url, error=str(e) or type(e).__name__)
            return False
        return True

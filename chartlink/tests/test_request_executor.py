"""Unit tests for RequestExecutor."""

import asyncio
import json

import httpx
import pytest

from chartlink.core.execution.error_classifier import (
    HTTP_ERROR,
    INVALID_RESPONSE,
    NETWORK_ERROR,
    TIMEOUT,
    NormalizedError,
)
from chartlink.core.execution.request_executor import RequestExecutor
from chartlink.core.retry_config import RequestPolicy

BASE_URL = "https://api.example.com"


def make_executor(handler, **policy_fields):
    """Build an executor on a mock transport with a recording sleep."""
    delays = []

    async def record_sleep(seconds):
        delays.append(seconds)

    policy = RequestPolicy(
        timeout=policy_fields.pop("timeout", 1.0),
        max_retries=policy_fields.pop("max_retries", 2),
        retry_delay=policy_fields.pop("retry_delay", 0.5),
        **policy_fields,
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    executor = RequestExecutor(base_url=BASE_URL, policy=policy, client=client, sleep=record_sleep)
    return executor, delays


class Recorder:
    """Mock transport handler returning queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )


class TestSuccess:
    """Test successful calls."""

    @pytest.mark.asyncio
    async def test_get_returns_decoded_body(self):
        """Test a 2xx response returns the JSON body after one attempt."""
        handler = Recorder(httpx.Response(200, json={"success": True, "data": [1, 2]}))
        executor, delays = make_executor(handler)

        result = await executor.get("/api/dashboards")

        assert result == {"success": True, "data": [1, 2]}
        assert len(handler.requests) == 1
        assert delays == []

    @pytest.mark.asyncio
    async def test_relative_and_absolute_urls(self):
        """Test relative paths use the base URL and absolute URLs are kept."""
        handler = Recorder(httpx.Response(200, json={}))
        executor, _ = make_executor(handler)

        await executor.get("/api/items")
        await executor.get("https://other.example.com/api/items")
        await executor.get("/api/items", base_url="https://alt.example.com")

        assert [str(r.url) for r in handler.requests] == [
            "https://api.example.com/api/items",
            "https://other.example.com/api/items",
            "https://alt.example.com/api/items",
        ]

    @pytest.mark.asyncio
    async def test_set_base_url(self):
        """Test the base URL can be replaced."""
        handler = Recorder(httpx.Response(200, json={}))
        executor, _ = make_executor(handler)

        executor.set_base_url("https://new.example.com")
        await executor.get("/ping")

        assert executor.base_url == "https://new.example.com"
        assert str(handler.requests[0].url) == "https://new.example.com/ping"

    @pytest.mark.asyncio
    async def test_json_body_and_default_content_type(self):
        """Test verb bodies are JSON encoded with a JSON content type."""
        handler = Recorder(httpx.Response(201, json={"success": True}))
        executor, _ = make_executor(handler)

        await executor.post("/api/charts", {"name": "Revenue"})
        await executor.put("/api/charts/1", {"name": "Sales"})
        await executor.patch("/api/charts/1", {"order": 2})
        await executor.delete("/api/charts/1")

        methods = [r.method for r in handler.requests]
        assert methods == ["POST", "PUT", "PATCH", "DELETE"]
        assert json.loads(handler.requests[0].content) == {"name": "Revenue"}
        assert handler.requests[3].content == b""
        assert all(r.headers["content-type"] == "application/json" for r in handler.requests)

    @pytest.mark.asyncio
    async def test_header_overrides(self):
        """Test per-call headers override instance and default headers."""
        handler = Recorder(httpx.Response(200, json={}))
        executor, _ = make_executor(handler)
        executor.headers["X-Client"] = "portal"

        await executor.get("/a", headers={"Content-Type": "text/plain"})

        request = handler.requests[0]
        assert request.headers["content-type"] == "text/plain"
        assert request.headers["x-client"] == "portal"

    @pytest.mark.asyncio
    async def test_header_overrides_ignore_case(self):
        """Test a lowercase per-call header replaces the default instead of duplicating it."""
        handler = Recorder(httpx.Response(200, json={}))
        executor, _ = make_executor(handler)

        await executor.post("/a", "raw", headers={"content-type": "text/plain"})

        assert handler.requests[0].headers.get_list("content-type") == ["text/plain"]

    @pytest.mark.asyncio
    async def test_empty_body(self):
        """Test a 204 response returns None."""
        handler = Recorder(httpx.Response(204))
        executor, _ = make_executor(handler)

        assert await executor.delete("/api/charts/1") is None

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self):
        """Test a call succeeds once the server recovers."""
        handler = Recorder(
            httpx.Response(503),
            httpx.Response(502),
            httpx.Response(200, json={"ok": True}),
        )
        executor, delays = make_executor(handler)

        assert await executor.get("/x") == {"ok": True}
        assert len(handler.requests) == 3
        assert delays == [0.5, 1.0]


class TestRetryPolicy:
    """Test retry bounds and classification."""

    @pytest.mark.asyncio
    async def test_server_error_attempts_max_retries_plus_one(self):
        """Test a persistent 5xx is attempted max_retries + 1 times then raised."""
        handler = Recorder(httpx.Response(500, json={"error": "database unavailable"}))
        executor, delays = make_executor(handler, max_retries=2)

        with pytest.raises(NormalizedError) as exc_info:
            await executor.get("/x")

        assert len(handler.requests) == 3
        assert exc_info.value.status == 500
        assert exc_info.value.code == HTTP_ERROR
        assert exc_info.value.message == "database unavailable"
        assert exc_info.value.details == {"error": "database unavailable"}
        assert delays == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        """Test a 4xx fails after a single attempt."""
        handler = Recorder(httpx.Response(404, text="not json"))
        executor, delays = make_executor(handler, max_retries=2)

        with pytest.raises(NormalizedError) as exc_info:
            await executor.get("/missing")

        assert len(handler.requests) == 1
        assert delays == []
        assert exc_info.value.status == 404
        assert exc_info.value.message == "HTTP 404: Not Found"
        assert exc_info.value.details == {}

    @pytest.mark.asyncio
    async def test_linear_backoff_delays(self):
        """Test delays grow as retry_delay * (attempt + 1)."""
        handler = Recorder(httpx.Response(500))
        executor, delays = make_executor(handler, max_retries=4, retry_delay=0.25)

        with pytest.raises(NormalizedError):
            await executor.get("/x")

        assert delays == [0.25, 0.5, 0.75, 1.0]

    @pytest.mark.asyncio
    async def test_network_error_retried(self):
        """Test transport errors have no status and are retried."""
        handler = Recorder(httpx.ConnectError("connection refused"))
        executor, delays = make_executor(handler, max_retries=1)

        with pytest.raises(NormalizedError) as exc_info:
            await executor.get("/x")

        assert len(handler.requests) == 2
        assert exc_info.value.status is None
        assert exc_info.value.code == NETWORK_ERROR
        assert delays == [0.5]

    @pytest.mark.asyncio
    async def test_timeout_cancels_attempt(self):
        """Test a slow response is abandoned after the timeout and retried."""
        calls = []

        async def slow(request):
            calls.append(request)
            await asyncio.sleep(10)
            return httpx.Response(200, json={})

        executor, delays = make_executor(slow, timeout=0.05, max_retries=1)

        with pytest.raises(NormalizedError) as exc_info:
            await executor.get("/slow")

        assert len(calls) == 2
        assert exc_info.value.code == TIMEOUT
        assert exc_info.value.status is None
        assert "timeout" in exc_info.value.message.lower()
        assert delays == [0.5]

    @pytest.mark.asyncio
    async def test_transport_timeout_follows_policy(self):
        """Test httpx timeouts match the policy instead of the 5s client default."""
        handler = Recorder(httpx.Response(200, json={}))
        executor, _ = make_executor(handler, timeout=12.0)

        await executor.get("/slow-report")
        await executor.get("/slow-report", timeout=30.0)

        assert handler.requests[0].extensions["timeout"]["read"] == 12.0
        assert handler.requests[1].extensions["timeout"]["read"] == 30.0

    @pytest.mark.asyncio
    async def test_slow_response_within_policy_timeout(self):
        """Test a response slower than httpx's default but inside the policy deadline succeeds."""
        async def slow(request):
            await asyncio.sleep(0.05)
            return httpx.Response(200, json={"ok": True})

        executor, _ = make_executor(slow, timeout=1.0, max_retries=0)

        assert await executor.get("/slow") == {"ok": True}

    @pytest.mark.asyncio
    async def test_per_call_overrides(self):
        """Test per-call fields replace only what is given."""
        handler = Recorder(httpx.Response(404))
        executor, delays = make_executor(handler, max_retries=1)

        with pytest.raises(NormalizedError):
            await executor.get("/x", retry_predicate=lambda error: True, retry_delay=2.0)

        assert len(handler.requests) == 2
        assert delays == [2.0]

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        """Test max_retries=0 makes a single attempt."""
        handler = Recorder(httpx.Response(503))
        executor, delays = make_executor(handler)

        with pytest.raises(NormalizedError):
            await executor.get("/x", max_retries=0)

        assert len(handler.requests) == 1
        assert delays == []

    @pytest.mark.asyncio
    async def test_invalid_json_success_body(self):
        """Test an unparseable 2xx body is a status-less error."""
        handler = Recorder(httpx.Response(200, text="<html>"))
        executor, _ = make_executor(handler, max_retries=0)

        with pytest.raises(NormalizedError) as exc_info:
            await executor.get("/x")

        assert exc_info.value.code == INVALID_RESPONSE
        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_unknown_override_rejected(self):
        """Test misspelled policy fields raise TypeError."""
        handler = Recorder(httpx.Response(200, json={}))
        executor, _ = make_executor(handler)

        with pytest.raises(TypeError):
            await executor.get("/x", max_retry=1)


class TestCheckReachable:
    """Test the HEAD existence check."""

    @pytest.mark.asyncio
    async def test_any_status_is_reachable(self):
        """Test error statuses still count as reachable."""
        handler = Recorder(httpx.Response(404))
        executor, _ = make_executor(handler)

        assert await executor.check_reachable("https://bi.example.com/superset/explore/p/abc/") is True
        assert handler.requests[0].method == "HEAD"
        assert handler.requests[0].extensions["timeout"]["read"] == 1.0

    @pytest.mark.asyncio
    async def test_transport_error_is_unreachable(self):
        """Test transport errors report False instead of raising."""
        handler = Recorder(httpx.ConnectError("no route to host"))
        executor, _ = make_executor(handler)

        assert await executor.check_reachable("https://bi.example.com/") is False

    @pytest.mark.asyncio
    async def test_timeout_is_unreachable(self):
        """Test a hanging origin reports False after the timeout."""
        async def hang(request):
            await asyncio.sleep(10)
            return httpx.Response(200)

        executor, _ = make_executor(hang)

        assert await executor.check_reachable("https://bi.example.com/", timeout=0.05) is False


class TestOwnedClient:
    """Test executors that create their own client."""

    @pytest.mark.asyncio
    async def test_policy_timeout_reaches_transport(self, monkeypatch):
        """Test the owned client sends the policy timeout, not httpx's default."""
        seen = []

        async def fake_request(self, method, url, **kwargs):
            seen.append(kwargs.get("timeout"))
            return httpx.Response(200, json={}, request=httpx.Request(method, url))

        monkeypatch.setattr(httpx.AsyncClient, "request", fake_request)

        async with RequestExecutor(
            base_url=BASE_URL, policy=RequestPolicy(timeout=10.0, max_retries=0)
        ) as executor:
            await executor.get("/reports")

        assert seen == [10.0]

"""Tests for HTTP client with retry logic."""

import httpx
import pytest
import respx

from buzzing.ingestion.http_client import (
    HTTPClient,
    HTTPClientError,
    RateLimitError,
    RetryConfig,
)


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_default_values(self):
        """Should have sensible defaults."""
        config = RetryConfig()

        assert config.max_retries == 3
        assert config.max_backoff_seconds == 30.0
        assert config.base_delay == 1.0
        assert config.jitter_factor == 0.1

    def test_calculate_backoff_exponential(self):
        """Should calculate exponential backoff."""
        config = RetryConfig(base_delay=1.0, jitter_factor=0.0)

        assert config.calculate_backoff(0) == 1.0
        assert config.calculate_backoff(1) == 2.0
        assert config.calculate_backoff(2) == 4.0
        assert config.calculate_backoff(3) == 8.0

    def test_calculate_backoff_respects_max(self):
        """Should cap backoff at max_backoff_seconds."""
        config = RetryConfig(base_delay=1.0, max_backoff_seconds=5.0, jitter_factor=0.0)

        assert config.calculate_backoff(2) == 4.0
        assert config.calculate_backoff(3) == 5.0  # Capped
        assert config.calculate_backoff(10) == 5.0

    def test_calculate_backoff_with_jitter(self):
        """Should add jitter within expected range."""
        config = RetryConfig(base_delay=1.0, jitter_factor=0.1, max_backoff_seconds=60.0)

        backoffs = [config.calculate_backoff(0) for _ in range(100)]

        assert all(1.0 <= b < 1.1 for b in backoffs)
        assert len(set(backoffs)) > 1

    def test_is_retryable_status(self):
        """Should retry 429 and transient 5xx only."""
        config = RetryConfig()

        for status in (429, 500, 502, 503, 504):
            assert config.is_retryable_status(status) is True
        for status in (200, 204, 400, 401, 403, 404):
            assert config.is_retryable_status(status) is False

    def test_is_retryable_exception(self):
        """Should retry timeouts and connection failures only."""
        config = RetryConfig()

        assert config.is_retryable_exception(httpx.TimeoutException("timeout")) is True
        assert config.is_retryable_exception(httpx.ConnectError("refused")) is True
        assert config.is_retryable_exception(httpx.ReadError("reset")) is True
        assert config.is_retryable_exception(ValueError("bad value")) is False


class TestHTTPClient:
    """Tests for HTTPClient."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_success(self):
        """Should return response on successful GET."""
        respx.get("https://api.example.com/data").mock(
            return_value=httpx.Response(200, json={"result": "success"})
        )

        async with HTTPClient() as client:
            response = await client.get("https://api.example.com/data")

        assert response.status_code == 200
        assert response.json() == {"result": "success"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_with_params(self):
        """Should include query parameters in GET request."""
        route = respx.get("https://api.example.com/data").mock(
            return_value=httpx.Response(200, json={})
        )

        async with HTTPClient() as client:
            await client.get("https://api.example.com/data", params={"q": "search", "limit": 10})

        request = route.calls.last.request
        assert "q=search" in str(request.url)
        assert "limit=10" in str(request.url)

    @pytest.mark.asyncio
    @respx.mock
    async def test_default_user_agent(self):
        """Should send the configured User-Agent on every request."""
        route = respx.get("https://api.example.com/data").mock(
            return_value=httpx.Response(200, json={})
        )

        async with HTTPClient(user_agent="BuzzingAgent/test") as client:
            await client.get("https://api.example.com/data")

        assert route.calls.last.request.headers["User-Agent"] == "BuzzingAgent/test"

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_json_decodes_body(self):
        """Should decode JSON and ask for it via Accept."""
        route = respx.get("https://api.example.com/items").mock(
            return_value=httpx.Response(200, json=[1, 2, 3])
        )

        async with HTTPClient() as client:
            data = await client.get_json("https://api.example.com/items")

        assert data == [1, 2, 3]
        assert route.calls.last.request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_json_malformed_body(self):
        """A body that is not JSON is a transport failure."""
        respx.get("https://api.example.com/items").mock(
            return_value=httpx.Response(200, text="<html>maintenance</html>")
        )

        async with HTTPClient() as client:
            with pytest.raises(HTTPClientError, match="Malformed JSON"):
                await client.get_json("https://api.example.com/items")

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_json_sends_body(self):
        """Should send a JSON body and decode the JSON reply."""
        route = respx.post("https://api.example.com/graphql").mock(
            return_value=httpx.Response(200, json={"data": {"ok": True}})
        )

        async with HTTPClient() as client:
            data = await client.post_json(
                "https://api.example.com/graphql",
                json_body={"query": "{ ok }"},
                headers={"Authorization": "Bearer token"},
            )

        assert data == {"data": {"ok": True}}
        request = route.calls.last.request
        assert request.headers.get("content-type") == "application/json"
        assert request.headers.get("Authorization") == "Bearer token"

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_text(self):
        """Should return the raw body for feeds and HTML pages."""
        respx.get("https://example.com/feed.xml").mock(
            return_value=httpx.Response(200, text="<rss></rss>")
        )

        async with HTTPClient() as client:
            body = await client.get_text("https://example.com/feed.xml")

        assert body == "<rss></rss>"

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_on_429_with_success(self):
        """Should retry on 429 and succeed on subsequent attempt."""
        call_count = 0

        def side_effect(request):
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                return httpx.Response(429, text="Rate limited")
            return httpx.Response(200, json={"success": True})

        respx.get("https://api.example.com/data").mock(side_effect=side_effect)

        config = RetryConfig(max_retries=3, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            response = await client.get("https://api.example.com/data")

        assert response.status_code == 200
        assert call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_on_500_with_success(self):
        """Should retry on 500 and succeed on subsequent attempt."""
        call_count = 0

        def side_effect(request):
            nonlocal call_count
            call_count += 1
            if call_count <= 2:
                return httpx.Response(500, text="Server error")
            return httpx.Response(200, json={"success": True})

        respx.get("https://api.example.com/data").mock(side_effect=side_effect)

        config = RetryConfig(max_retries=3, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            response = await client.get("https://api.example.com/data")

        assert response.status_code == 200
        assert call_count == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_error_after_retries_exhausted(self):
        """Should raise RateLimitError after all retries fail with 429."""
        respx.get("https://api.example.com/data").mock(
            return_value=httpx.Response(429, text="Rate limited")
        )

        config = RetryConfig(max_retries=2, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await client.get("https://api.example.com/data")

        assert exc_info.value.status_code == 429
        assert "Rate limit exceeded" in str(exc_info.value)

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_after_retries_exhausted(self):
        """Should raise HTTPClientError after all retries fail with 5xx."""
        route = respx.get("https://api.example.com/data").mock(
            return_value=httpx.Response(503, text="Service unavailable")
        )

        config = RetryConfig(max_retries=2, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            with pytest.raises(HTTPClientError) as exc_info:
                await client.get("https://api.example.com/data")

        assert route.call_count == 3
        assert exc_info.value.status_code == 503
        assert "failed with status 503" in str(exc_info.value)

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_retry_on_4xx(self):
        """Should not retry on non-429 4xx errors."""
        route = respx.get("https://api.example.com/data").mock(
            return_value=httpx.Response(404, text="Not found")
        )

        config = RetryConfig(max_retries=3, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            with pytest.raises(HTTPClientError) as exc_info:
                await client.get("https://api.example.com/data")

        assert route.call_count == 1
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_on_timeout(self):
        """Should retry on timeout exception."""
        call_count = 0

        def side_effect(request):
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise httpx.TimeoutException("Request timed out")
            return httpx.Response(200, json={"success": True})

        respx.get("https://api.example.com/data").mock(side_effect=side_effect)

        config = RetryConfig(max_retries=3, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            response = await client.get("https://api.example.com/data")

        assert response.status_code == 200
        assert call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_connect_error_after_retries_exhausted(self):
        """Persistent connection failures surface as HTTPClientError."""
        respx.get("https://api.example.com/data").mock(
            side_effect=httpx.ConnectError("Connection refused")
        )

        config = RetryConfig(max_retries=1, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            with pytest.raises(HTTPClientError, match="after 2 attempts"):
                await client.get("https://api.example.com/data")

    @pytest.mark.asyncio
    async def test_client_not_used_as_context_manager(self):
        """Should raise error if client not used as context manager."""
        client = HTTPClient()

        with pytest.raises(RuntimeError, match="must be used as async context manager"):
            await client.get("https://api.example.com/data")

    @pytest.mark.asyncio
    @respx.mock
    async def test_custom_headers(self):
        """Should include custom headers in request."""
        route = respx.get("https://api.example.com/data").mock(
            return_value=httpx.Response(200, json={})
        )

        async with HTTPClient() as client:
            await client.get(
                "https://api.example.com/data",
                headers={"X-Custom-Header": "custom_value"},
            )

        request = route.calls.last.request
        assert request.headers.get("X-Custom-Header") == "custom_value"

"""
Tests for resilient request execution.
"""

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock

from shared.errors import HTTP_ERROR, NETWORK_ERROR, TIMEOUT, ServiceError
from shared.retry import (
    ResilientRequestExecutor,
    is_retryable,
    normalize_error,
    retry_with_backoff,
)


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "http://service.local/x")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


class TestNormalizeError:
    """Test error classification."""

    def test_service_error_passes_through(self):
        error = ServiceError("already normalized", code=HTTP_ERROR, status_code=400)
        assert normalize_error(error) is error

    def test_timeout(self):
        error = normalize_error(asyncio.TimeoutError())
        assert error.code == TIMEOUT
        assert error.status_code == 408
        assert error.retryable is True

    def test_http_status(self):
        error = normalize_error(_status_error(503))
        assert error.code == HTTP_ERROR
        assert error.status_code == 503
        assert error.retryable is True

        error = normalize_error(_status_error(404))
        assert error.status_code == 404
        assert error.retryable is False

    def test_transport_error(self):
        error = normalize_error(httpx.ConnectError("connection refused"))
        assert error.code == NETWORK_ERROR
        assert error.status_code is None

    def test_unclassified(self):
        cause = RuntimeError("weird")
        error = normalize_error(cause)
        assert error.code is None
        assert error.original_error is cause


def test_is_retryable():
    assert is_retryable(ServiceError("net", code=NETWORK_ERROR))
    assert is_retryable(ServiceError("busy", code=HTTP_ERROR, status_code=429))
    assert not is_retryable(ServiceError("nope", code=HTTP_ERROR, status_code=401))


class TestRetryRequest:
    """Test retry bound and backoff."""

    @pytest.mark.asyncio
    async def test_retries_with_exponential_backoff(self, recorded_sleeps):
        executor = ResilientRequestExecutor("test", sleep=recorded_sleeps)
        fn = AsyncMock(side_effect=ServiceError("down", code=HTTP_ERROR, status_code=503))

        with pytest.raises(ServiceError) as exc_info:
            await executor.retry_request(fn, retries=2, delay=0.1)

        assert fn.await_count == 3
        assert recorded_sleeps.delays == pytest.approx([0.1, 0.2])
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_non_retryable_error_fails_immediately(self, recorded_sleeps):
        executor = ResilientRequestExecutor("test", sleep=recorded_sleeps)
        fn = AsyncMock(side_effect=ServiceError("unauthorized", code=HTTP_ERROR, status_code=401))

        with pytest.raises(ServiceError):
            await executor.retry_request(fn, retries=2, delay=0.1)

        assert fn.await_count == 1
        assert recorded_sleeps.delays == []

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failure(self, recorded_sleeps):
        executor = ResilientRequestExecutor("test", sleep=recorded_sleeps)
        fn = AsyncMock(side_effect=[httpx.ConnectError("reset"), "ok"])

        result = await executor.retry_request(fn, retries=3, delay=0.5)

        assert result == "ok"
        assert fn.await_count == 2
        assert recorded_sleeps.delays == [0.5]

    @pytest.mark.asyncio
    async def test_custom_predicate(self, recorded_sleeps):
        executor = ResilientRequestExecutor("test", sleep=recorded_sleeps)
        fn = AsyncMock(side_effect=ServiceError("down", code=HTTP_ERROR, status_code=503))

        with pytest.raises(ServiceError):
            await executor.retry_request(fn, retries=5, delay=0.1, should_retry=lambda e: False)

        assert fn.await_count == 1


class TestExecuteRequest:
    """Test error conversion without retries."""

    @pytest.mark.asyncio
    async def test_returns_result(self):
        executor = ResilientRequestExecutor("test")
        assert await executor.execute_request(AsyncMock(return_value=42), "answer") == 42

    @pytest.mark.asyncio
    async def test_converts_errors(self):
        executor = ResilientRequestExecutor("test")

        with pytest.raises(ServiceError) as exc_info:
            await executor.execute_request(AsyncMock(side_effect=httpx.ReadError("eof")))

        assert exc_info.value.code == NETWORK_ERROR


class TestFetch:
    """Test timeout-bounded HTTP requests."""

    @pytest.mark.asyncio
    async def test_success(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        async with httpx.AsyncClient(transport=transport) as client:
            executor = ResilientRequestExecutor("test", client=client)
            response = await executor.fetch("http://service.local/ping")

        assert response.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_non_2xx_becomes_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502))
        async with httpx.AsyncClient(transport=transport) as client:
            executor = ResilientRequestExecutor("test", client=client)
            with pytest.raises(ServiceError) as exc_info:
                await executor.fetch("http://service.local/ping")

        assert exc_info.value.code == HTTP_ERROR
        assert exc_info.value.status_code == 502
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow(request):
            await asyncio.sleep(1)
            return httpx.Response(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(slow)) as client:
            executor = ResilientRequestExecutor("test", client=client)
            with pytest.raises(ServiceError) as exc_info:
                await executor.fetch("http://service.local/slow", timeout=0.01)

        assert exc_info.value.code == TIMEOUT
        assert exc_info.value.status_code == 408

    @pytest.mark.asyncio
    async def test_network_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
            executor = ResilientRequestExecutor("test", client=client)
            with pytest.raises(ServiceError) as exc_info:
                await executor.fetch("http://service.local/ping")

        assert exc_info.value.code == NETWORK_ERROR


class TestRetryWithBackoff:
    """Test the retry decorator."""

    @pytest.mark.asyncio
    async def test_decorator_retries_then_succeeds(self):
        calls = []

        @retry_with_backoff(max_attempts=3, base_delay=0)
        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ServiceError("busy", code=HTTP_ERROR, status_code=429)
            return "done"

        assert await flaky() == "done"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_decorator_gives_up(self):
        calls = []

        @retry_with_backoff(max_attempts=2, base_delay=0)
        async def always_down():
            calls.append(1)
            raise ServiceError("down", code=HTTP_ERROR, status_code=500)

        with pytest.raises(ServiceError):
            await always_down()
        assert len(calls) == 2

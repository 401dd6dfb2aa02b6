"""
Resilient request execution.

Retrying, timeout-bounded, classified-error wrapper around external calls.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from shared.config import settings
from shared.errors import (
    HTTP_ERROR,
    NETWORK_ERROR,
    RETRYABLE_STATUS_CODES,
    TIMEOUT,
    ServiceError,
)
from shared.logging import get_logger

logger = get_logger("retry")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def normalize_error(error: BaseException) -> ServiceError:
    """
    Convert any raised value into a ServiceError.

    Args:
        error: Exception raised by an external call

    Returns:
        ServiceError (the same instance if already normalized)
    """
    if isinstance(error, ServiceError):
        return error

    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return ServiceError(
            "Request timed out",
            code=TIMEOUT,
            status_code=408,
            original_error=error,
            retryable=True
        )

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return ServiceError(
            f"HTTP {status}: {error.response.reason_phrase}",
            code=HTTP_ERROR,
            status_code=status,
            original_error=error,
            retryable=status in RETRYABLE_STATUS_CODES
        )

    if isinstance(error, httpx.TransportError):
        return ServiceError(
            str(error) or "Network error",
            code=NETWORK_ERROR,
            original_error=error,
            retryable=True
        )

    return ServiceError(str(error) or type(error).__name__, original_error=error)


def is_retryable(error: ServiceError) -> bool:
    """
    Default retry predicate.

    Network-class errors (no status code) and transient HTTP statuses are retried.
    """
    if error.status_code is None:
        return True
    return error.status_code in RETRYABLE_STATUS_CODES


class ResilientRequestExecutor:
    """Wraps calls to external services with logging, retries and timeouts."""

    def __init__(
        self,
        name: str,
        retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        sleep: Optional[Sleep] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize executor.

        Args:
            name: Component name used in log records
            retries: Default retry count (settings.request_retries)
            retry_delay: Base backoff delay in seconds (settings.request_retry_delay)
            timeout: Default fetch timeout in seconds (settings.request_timeout)
            sleep: Awaitable sleep function, injectable for tests
            client: Shared httpx client; a short-lived one is created per fetch otherwise
        """
        self.name = name
        self.retries = settings.request_retries if retries is None else retries
        self.retry_delay = settings.request_retry_delay if retry_delay is None else retry_delay
        self.timeout = settings.request_timeout if timeout is None else timeout
        self._sleep = sleep or asyncio.sleep
        self._client = client

    async def execute_request(
        self,
        fn: Callable[[], Awaitable[T]],
        context: Optional[str] = None
    ) -> T:
        """
        Run a request, converting failures into ServiceError.

        Args:
            fn: Zero-argument coroutine function performing the call
            context: Description of the operation for logs

        Returns:
            Result of fn

        Raises:
            ServiceError: On any failure
        """
        logger.debug(f"[{self.name}] {context or 'request'}")
        try:
            return await fn()
        except Exception as e:
            error = normalize_error(e)
            logger.error(
                f"[{self.name}] {context or 'Request failed'}: {error.message}",
                extra={"code": error.code, "status_code": error.status_code}
            )
            raise error from e

    async def retry_request(
        self,
        fn: Callable[[], Awaitable[T]],
        retries: Optional[int] = None,
        delay: Optional[float] = None,
        should_retry: Optional[Callable[[ServiceError], bool]] = None
    ) -> T:
        """
        Run a request with exponential backoff.

        Makes up to retries + 1 attempts, sleeping delay * 2 ** attempt between them.

        Args:
            fn: Zero-argument coroutine function performing the call
            retries: Number of retries after the first attempt
            delay: Base delay in seconds
            should_retry: Predicate deciding whether an error is worth retrying

        Returns:
            Result of fn

        Raises:
            ServiceError: The last classified error once retries are exhausted
        """
        max_retries = self.retries if retries is None else retries
        base_delay = self.retry_delay if delay is None else delay
        predicate = should_retry or is_retryable

        attempt = 0
        while True:
            try:
                return await fn()
            except Exception as e:
                error = normalize_error(e)
                if attempt >= max_retries or not predicate(error):
                    if attempt > 0:
                        logger.error(
                            f"[{self.name}] Request failed after {attempt + 1} attempts: {error.message}",
                            extra={"code": error.code, "status_code": error.status_code}
                        )
                    if error is e:
                        raise
                    raise error from e

                wait = base_delay * (2 ** attempt)
                logger.warning(
                    f"[{self.name}] Request failed, retrying in {wait:.2f}s "
                    f"(attempt {attempt + 1}/{max_retries + 1}): {error.message}",
                    extra={"code": error.code, "status_code": error.status_code}
                )
                await self._sleep(wait)
                attempt += 1

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        timeout: Optional[float] = None,
        **kwargs: Any
    ) -> httpx.Response:
        """
        Perform an HTTP request bounded by a timeout.

        Args:
            url: Target URL
            method: HTTP method
            timeout: Timeout in seconds (executor default when None)
            **kwargs: Passed through to httpx (json, params, headers...)

        Returns:
            httpx.Response with a 2xx status

        Raises:
            ServiceError: TIMEOUT, HTTP_ERROR or NETWORK_ERROR
        """
        limit = self.timeout if timeout is None else timeout

        async def _send() -> httpx.Response:
            if self._client is not None:
                return await self._client.request(method, url, **kwargs)
            async with httpx.AsyncClient() as client:
                return await client.request(method, url, **kwargs)

        try:
            response = await asyncio.wait_for(_send(), timeout=limit)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ServiceError(
                f"Request to {url} timed out after {limit}s",
                code=TIMEOUT,
                status_code=408,
                original_error=e,
                retryable=True
            ) from e
        except httpx.HTTPError as e:
            raise ServiceError(
                str(e) or f"Network error calling {url}",
                code=NETWORK_ERROR,
                original_error=e,
                retryable=True
            ) from e

        if not response.is_success:
            raise ServiceError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                code=HTTP_ERROR,
                status_code=response.status_code,
                retryable=response.status_code in RETRYABLE_STATUS_CODES
            )

        return response


def retry_with_backoff(max_attempts: int = 3, base_delay: float = 1.0):
    """
    Decorator retrying an async function with exponential backoff.

    Args:
        max_attempts: Total number of attempts
        base_delay: Base delay in seconds

    Returns:
        Decorator
    """
    def decorator(func):
        executor = ResilientRequestExecutor(func.__qualname__)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            return await executor.retry_request(
                lambda: func(*args, **kwargs),
                retries=max_attempts - 1,
                delay=base_delay
            )

        return wrapper

    return decorator

"""
HTTP transport for the market data provider.
Performs GET requests with bounded retries: rate-limited responses back off
linearly, network failures back off flat, other HTTP errors fail fast.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from src.core.config import settings


class StockApiError(Exception):
    """Base exception for provider transport errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderHTTPError(StockApiError):
    """Non-2xx response that is not worth retrying."""


class RateLimitedError(StockApiError):
    """HTTP 429 from the provider."""


class MaxRetriesExceededError(StockApiError):
    """Every attempt was rate limited."""


def _backoff(base_delay_ms: int) -> Callable[[RetryCallState], float]:
    """Linear backoff for rate limiting, flat delay for network errors."""

    def wait(retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RateLimitedError):
            return base_delay_ms * retry_state.attempt_number / 1000.0
        return base_delay_ms / 1000.0

    return wait


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Provider request attempt {retry_state.attempt_number} failed ({exc}); "
        f"retrying in {retry_state.next_action.sleep:.2f}s"
    )


async def _get(client: httpx.AsyncClient, url: str) -> httpx.Response:
    response = await client.get(url)
    if response.is_success:
        return response
    if response.status_code == 429:
        raise RateLimitedError("HTTP 429: rate limit exceeded", status_code=429)
    raise ProviderHTTPError(
        f"HTTP {response.status_code}: {response.reason_phrase}",
        status_code=response.status_code,
    )


async def fetch_with_retry(
    url: str,
    max_attempts: Optional[int] = None,
    base_delay_ms: Optional[int] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> httpx.Response:
    """
    GET a URL with retries.

    Args:
        url: Fully built request URL
        max_attempts: Total attempts (default from settings, normally 3)
        base_delay_ms: Base backoff delay in milliseconds (default from settings)
        client: Optional shared AsyncClient; a short-lived one is created otherwise
        sleep: Awaitable sleep used between attempts

    Returns:
        The successful httpx.Response

    Raises:
        ProviderHTTPError: On a non-2xx, non-429 status (no retry)
        MaxRetriesExceededError: If every attempt was rate limited
        httpx.TransportError: If the last attempt failed at network level
    """
    if max_attempts is None:
        max_attempts = settings.retry_max_attempts
    if base_delay_ms is None:
        base_delay_ms = settings.retry_base_delay_ms

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=settings.request_timeout_seconds)

    try:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=_backoff(base_delay_ms),
            retry=retry_if_exception_type((RateLimitedError, httpx.TransportError)),
            before_sleep=_log_retry,
            sleep=sleep,
            reraise=True,
        )
        return await retrying(_get, client, url)
    except RateLimitedError as e:
        logger.error(f"Rate limited on all {max_attempts} attempts")
        raise MaxRetriesExceededError("Max retries exceeded", status_code=429) from e
    finally:
        if owns_client:
            await client.aclose()

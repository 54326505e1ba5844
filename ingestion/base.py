"""
Base class for upstream HTTP sources with retry and circuit breaker handling
"""

from abc import ABC
from typing import Dict, Any, Optional, Type
from datetime import datetime, timedelta
import asyncio
import logging

import httpx

from core.config import settings
from core.exceptions import (
    TransportError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ResourceNotFoundError,
)

logger = logging.getLogger(__name__)


class HTTPSource(ABC):
    """
    Shared resilience for every upstream GET request.

    Responsibilities:
    - Per-request timeout
    - Retry with exponential backoff for 5xx, timeouts and network errors
    - Honour Retry-After on HTTP 429
    - Fail fast on 401/403/404
    - Circuit breaker after repeated failures

    Subclasses set error_class (raised for other non-success responses) and
    fetch_name (reported in error context).
    """

    error_class: Type[TransportError] = TransportError
    fetch_name: str = "http"

    def __init__(
        self,
        source_name: str,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        self.source_name = source_name
        self.max_retries = max(1, max_retries if max_retries is not None else settings.MAX_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else settings.RETRY_DELAY_SECONDS
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS

        # Circuit breaker state
        self._circuit_breaker_failures = 0
        self._circuit_breaker_threshold = 5
        self._circuit_breaker_open_until: Optional[datetime] = None
        self._circuit_breaker_timeout = 60  # seconds

    def build_headers(self) -> Dict[str, str]:
        """Headers sent with every request"""
        return {"Accept": "application/json"}

    def _is_circuit_open(self) -> bool:
        """Check if circuit breaker is open."""
        if self._circuit_breaker_open_until is None:
            return False

        if datetime.utcnow() >= self._circuit_breaker_open_until:
            logger.info(f"Circuit breaker reset for {self.source_name}")
            self._circuit_breaker_failures = 0
            self._circuit_breaker_open_until = None
            return False

        return True

    def _record_failure(self):
        """Record a failure and potentially open circuit breaker."""
        self._circuit_breaker_failures += 1

        if self._circuit_breaker_failures >= self._circuit_breaker_threshold:
            self._circuit_breaker_open_until = datetime.utcnow() + timedelta(
                seconds=self._circuit_breaker_timeout
            )
            logger.warning(
                f"Circuit breaker opened for {self.source_name}. "
                f"Will retry after {self._circuit_breaker_timeout} seconds."
            )

    def _record_success(self):
        """Record a successful request."""
        self._circuit_breaker_failures = 0
        self._circuit_breaker_open_until = None

    def _backoff(self, attempt: int) -> float:
        return self.retry_delay * (2 ** attempt)

    def _retry_after(self, response: httpx.Response, attempt: int) -> float:
        header = response.headers.get("Retry-After")
        try:
            return float(header)
        except (TypeError, ValueError):
            return self._backoff(attempt)

    async def _make_request_with_retry(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Make HTTP GET request with retry logic and exponential backoff.

        Args:
            client: HTTP client
            url: Request URL
            params: Query parameters
            context: Extra error context (release, page, ...)

        Returns:
            Successful HTTP response

        Raises:
            AuthenticationError: HTTP 401/403
            ResourceNotFoundError: HTTP 404
            RateLimitError: HTTP 429 after max retries
            NetworkError: 5xx, timeouts or connection failures after max retries
            TransportError: Any other non-success response (as self.error_class)
        """
        base_context = {
            "fetch": self.fetch_name,
            "url": url,
            "source_name": self.source_name,
            **(context or {}),
        }

        if self._is_circuit_open():
            raise self.error_class(
                f"Circuit breaker is open for {self.source_name}",
                context={
                    **base_context,
                    "open_until": self._circuit_breaker_open_until.isoformat()
                }
            )

        headers = self.build_headers()

        for attempt in range(self.max_retries):
            is_last_attempt = attempt == self.max_retries - 1
            try:
                logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")

                response = await client.get(
                    url,
                    headers=headers,
                    params=params,
                    timeout=self.timeout
                )
            except httpx.TimeoutException as e:
                if not is_last_attempt:
                    delay = self._backoff(attempt)
                    logger.warning(f"Request timeout for {url}. Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                self._record_failure()
                raise NetworkError(
                    f"Request timeout after {self.max_retries} attempts",
                    context={**base_context, "timeout": self.timeout, "retry_count": attempt + 1},
                    original_exception=e
                )
            except httpx.TransportError as e:
                if not is_last_attempt:
                    delay = self._backoff(attempt)
                    logger.warning(f"Network error for {url}. Retrying in {delay} seconds: {e}")
                    await asyncio.sleep(delay)
                    continue
                self._record_failure()
                raise NetworkError(
                    f"Network error after {self.max_retries} attempts",
                    context={**base_context, "retry_count": attempt + 1},
                    original_exception=e
                )

            status_code = response.status_code

            if status_code in (401, 403):
                self._record_failure()
                raise AuthenticationError(
                    f"Authentication failed for {url}",
                    context={**base_context, "status_code": status_code}
                )

            if status_code == 404:
                self._record_failure()
                raise ResourceNotFoundError(
                    f"Resource not found: {url}",
                    context={**base_context, "status_code": 404}
                )

            if status_code == 429:
                retry_after = self._retry_after(response, attempt)
                if not is_last_attempt:
                    logger.warning(f"Rate limited by {url}. Retrying after {retry_after} seconds")
                    await asyncio.sleep(retry_after)
                    continue
                self._record_failure()
                raise RateLimitError(
                    f"Rate limit exceeded for {url}",
                    context={**base_context, "status_code": 429, "retry_count": attempt + 1},
                    retry_after=int(retry_after)
                )

            if status_code >= 500:
                if not is_last_attempt:
                    delay = self._backoff(attempt)
                    logger.warning(
                        f"Server error {status_code} from {url}. "
                        f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                self._record_failure()
                raise NetworkError(
                    f"Server error {status_code} after {self.max_retries} attempts",
                    context={
                        **base_context,
                        "status_code": status_code,
                        "retry_count": attempt + 1,
                        "response_body": response.text[:500]
                    }
                )

            if not 200 <= status_code < 300:
                self._record_failure()
                raise self.error_class(
                    f"Unexpected HTTP {status_code} from {url}",
                    context={
                        **base_context,
                        "status_code": status_code,
                        "response_body": response.text[:500]
                    }
                )

            self._record_success()
            return response

        # max_retries is at least 1, every branch above returns, continues or raises
        raise self.error_class("Max retries exceeded", context=base_context)

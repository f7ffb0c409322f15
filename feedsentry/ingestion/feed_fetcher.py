"""
Source Fetcher
==============

Retrieves one feed document over HTTP with a hard per-attempt timeout and
linear backoff between attempts. Exhausted retries surface as
SourceUnavailableError, scoped to the single source being fetched.
"""

import asyncio
import ssl
from typing import Optional

import aiohttp
import certifi

from ..config.settings import FetchSettings
from ..recovery.retry_logic import RetryConfig, RetryManager, RetryStrategy
from ..utils.clock import Clock, SystemClock
from ..utils.exceptions import (
    ErrorCode,
    FeedFetchError,
    SourceUnavailableError,
    ValidationError,
)
from ..utils.logging import get_logger_for_component
from ..utils.validators import URLValidator

# Client errors worth another attempt
RETRYABLE_CLIENT_STATUSES = {408, 425, 429}


class SourceFetcher:
    """aiohttp-based feed retrieval shared by all pipelines of a round.

    Usage:
        async with SourceFetcher(settings.fetch) as fetcher:
            raw = await fetcher.fetch("https://example.com/feed.xml")
    """

    def __init__(
        self,
        settings: Optional[FetchSettings] = None,
        max_connections: int = 8,
        clock: Optional[Clock] = None,
    ):
        """Initialize fetcher.

        Args:
            settings: Timeout, retry and header configuration
            max_connections: Connection pool size of the shared session
            clock: Used for backoff delays
        """
        self.settings = settings or FetchSettings()
        self.max_connections = max_connections
        self.clock = clock or SystemClock()
        self.logger = get_logger_for_component("feed_fetcher")

        self.retry_config = RetryConfig(
            max_attempts=self.settings.max_attempts,
            strategy=RetryStrategy.LINEAR_BACKOFF,
            base_delay=self.settings.base_delay_seconds,
        )
        self.retry_manager = RetryManager(self.retry_config, clock=self.clock)

        # SSL context for secure requests
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def headers(self) -> dict:
        return {
            "User-Agent": self.settings.user_agent,
            "Accept": self.settings.accept,
            "Accept-Encoding": "gzip, deflate",
        }

    async def open(self) -> None:
        """Create the shared HTTP session."""
        if self._session is not None and not self._session.closed:
            return

        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit=self.max_connections * 2,
            limit_per_host=5,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.settings.timeout_seconds),
            headers=self.headers,
        )

    async def close(self) -> None:
        """Close the shared HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "SourceFetcher":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch(self, feed_url: str, timeout: Optional[float] = None) -> bytes:
        """Fetch a feed document, retrying transient failures.

        Args:
            feed_url: Feed endpoint
            timeout: Per-attempt timeout in seconds (settings default)

        Returns:
            Raw response body

        Raises:
            SourceUnavailableError: If every attempt failed or the URL is unusable
        """
        if self._session is None:
            async with self:
                return await self.fetch(feed_url, timeout)

        try:
            url = URLValidator.validate_feed_url(feed_url)
        except ValidationError as e:
            raise SourceUnavailableError(
                f"Invalid feed URL: {e}", feed_url=feed_url, attempts=0
            ) from e

        timeout = timeout or self.settings.timeout_seconds

        try:
            return await self.retry_manager.retry_async(
                self._fetch_once, url, timeout, operation=f"fetch {url}"
            )
        except FeedFetchError as e:
            attempts = self.retry_config.max_attempts if e.recoverable else 1
            raise SourceUnavailableError(
                f"Feed unavailable after {attempts} attempt(s): {e}",
                feed_url=url,
                attempts=attempts,
            ) from e

    async def _fetch_once(self, url: str, timeout: float) -> bytes:
        """Single GET; every failure is normalized to FeedFetchError."""
        try:
            async with self._session.get(
                url, timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                if response.status != 200:
                    raise FeedFetchError(
                        f"HTTP {response.status}: {response.reason}",
                        feed_url=url,
                        error_code=ErrorCode.FEED_HTTP_ERROR,
                        context={"status": response.status},
                        recoverable=self._is_retryable_status(response.status),
                    )

                body = await response.read()
                self.logger.debug(f"Fetched {len(body)} bytes from {url}")
                return body

        except asyncio.TimeoutError as e:
            raise FeedFetchError(
                f"Request timeout after {timeout}s",
                feed_url=url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except aiohttp.ClientError as e:
            raise FeedFetchError(
                f"Network error: {e}",
                feed_url=url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

    @staticmethod
    def _is_retryable_status(status: int) -> bool:
        return status >= 500 or status in RETRYABLE_CLIENT_STATUSES

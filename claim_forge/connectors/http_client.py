"""HTTP client with retry for CMS page and distribution downloads.

Provides:
- Page fetch (URL -> HTML text)
- Streamed download to a local file
- Exponential backoff retry on connect errors, timeouts, 429 and 5xx
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, TypeVar

import httpx

from .. import config

logger = logging.getLogger(__name__)

T = TypeVar("T")

DOWNLOAD_CHUNK_SIZE = 1024 * 256


class HttpRequestError(Exception):
    """Raised when an HTTP request fails after retries."""

    def __init__(self, message: str, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class HttpClient:
    """Thin httpx wrapper used by the source locator and fetcher.

    The underlying httpx.Client is created lazily and reused for every
    request until close() is called.
    """

    def __init__(
        self,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        verify_ssl: bool | None = None,
        user_agent: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            timeout: Request timeout in seconds
            max_retries: Retry attempts after the first failure
            retry_delay: Initial backoff delay in seconds (doubles per attempt)
            verify_ssl: Verify TLS certificates
            user_agent: User-Agent header value
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.timeout = config.HTTP_TIMEOUT if timeout is None else timeout
        self.max_retries = config.HTTP_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = config.HTTP_RETRY_DELAY if retry_delay is None else retry_delay
        self.verify_ssl = config.VERIFY_SSL if verify_ssl is None else verify_ssl
        self.user_agent = user_agent or config.USER_AGENT
        self._transport = transport
        self._client: httpx.Client | None = None

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                verify=self.verify_ssl,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def get_text(self, url: str) -> str:
        """Fetch a page and return its decoded body."""

        def _fetch() -> str:
            response = self._get_client().get(url)
            self._raise_for_status(url, response.status_code)
            return response.text

        return self._with_retry(url, _fetch)

    def download(self, url: str, dest: Path) -> int:
        """Stream a URL into dest, overwriting it. Returns bytes written."""

        def _stream() -> int:
            written = 0
            with self._get_client().stream("GET", url) as response:
                self._raise_for_status(url, response.status_code)
                with open(dest, "wb") as f:
                    for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
                        written += len(chunk)
            return written

        return self._with_retry(url, _stream)

    @staticmethod
    def _raise_for_status(url: str, status_code: int) -> None:
        if status_code >= 400:
            raise HttpRequestError(
                f"HTTP {status_code} for {url}", url, status_code=status_code
            )

    def _with_retry(self, url: str, operation: Callable[[], T]) -> T:
        """Run operation with exponential backoff on transient failures.

        Raises:
            HttpRequestError: On a client error or after retries are exhausted
        """
        last_error: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                return operation()
            except HttpRequestError as e:
                last_error = e
                # Don't retry client errors other than rate limiting
                if e.status_code and e.status_code < 500 and e.status_code != 429:
                    raise
            except httpx.TransportError as e:
                last_error = e

            if attempt < self.max_retries:
                delay = self.retry_delay * (2**attempt)
                logger.warning(f"Request to {url} failed, retrying in {delay}s: {last_error}")
                time.sleep(delay)

        status_code = getattr(last_error, "status_code", None)
        raise HttpRequestError(
            f"Request failed after {self.max_retries + 1} attempts: {last_error}",
            url,
            status_code=status_code,
        )

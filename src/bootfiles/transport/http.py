"""
HTTP(S) transport.

Streams response bodies into the destination via copy_and_verify(). Opening
the connection is retried on connection errors and timeouts; once bytes have
started flowing into the destination nothing is retried, because the
destination cannot be rewound.
"""
from __future__ import annotations

import logging
from typing import IO, Iterator, Optional
from urllib.parse import SplitResult

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import FetchError
from ..fetch_types import FetchOptions
from .base import CHUNK_SIZE, copy_and_verify

__all__ = ["HttpTransport"]

logger = logging.getLogger(__name__)

_RETRYABLE = (httpx.ConnectError, httpx.TimeoutException)


class HttpTransport:
    """
    Transport for http:// and https:// sources.

    Args:
        timeout_s: Per-request timeout
        retry: Extra attempts for opening the connection (0 = single attempt)
        backoff_s: Base of the exponential wait between attempts
        insecure: Skip TLS certificate verification
        user_agent: User-Agent header
        client: Pre-built httpx client (tests inject one with a MockTransport)
    """

    def __init__(
        self,
        *,
        timeout_s: float = 30.0,
        retry: int = 0,
        backoff_s: float = 0.5,
        insecure: bool = False,
        user_agent: str = "bootfiles",
        client: Optional[httpx.Client] = None,
    ):
        self.retry = retry
        self.backoff_s = backoff_s
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout_s, connect=min(timeout_s, 10.0)),
            follow_redirects=True,
            verify=not insecure,
            headers={"User-Agent": user_agent},
        )

    def fetch(self, source: SplitResult, dest: IO[bytes], options: FetchOptions) -> None:
        url = source.geturl()
        response = self._open(url)
        try:
            written = copy_and_verify(self._iter_body(url, response), dest, options, source=url)
        finally:
            response.close()
        logger.debug(f"Fetched {written} bytes from {url}")

    def _open(self, url: str) -> httpx.Response:
        retrying = Retrying(
            stop=stop_after_attempt(self.retry + 1),
            wait=wait_exponential(multiplier=self.backoff_s, max=10),
            retry=retry_if_exception_type(_RETRYABLE),
            reraise=True,
        )
        try:
            response = retrying(self._send, url)
        except httpx.RequestError as e:
            raise FetchError(f"Network error fetching {url}: {e}") from e

        if response.status_code == 404:
            response.close()
            raise FetchError(f"Not found: {url}")
        if response.status_code >= 400:
            response.close()
            raise FetchError(f"HTTP error {response.status_code} fetching {url}")
        return response

    def _send(self, url: str) -> httpx.Response:
        logger.debug(f"GET {url}")
        request = self.client.build_request("GET", url)
        return self.client.send(request, stream=True)

    def _iter_body(self, url: str, response: httpx.Response) -> Iterator[bytes]:
        try:
            yield from response.iter_bytes(CHUNK_SIZE)
        except httpx.HTTPError as e:
            raise FetchError(f"Error reading response body from {url}: {e}") from e

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

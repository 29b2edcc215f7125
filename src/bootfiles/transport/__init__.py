"""
Transport package - moves source bytes into staging files.

The Fetcher dispatches on the source URL scheme. An empty source produces an
empty file (still subject to verification).
"""
from __future__ import annotations

import logging
from typing import IO, Dict
from urllib.parse import SplitResult

from ..errors import UnsupportedSourceError
from ..fetch_types import FetchOptions, Transport
from .base import copy_and_verify
from .http import HttpTransport
from .local import DataUrlTransport, FileTransport

__all__ = ["Fetcher", "create_fetcher", "HttpTransport", "DataUrlTransport", "FileTransport"]

logger = logging.getLogger(__name__)


class Fetcher:
    """Transport that routes each source to the transport for its scheme."""

    def __init__(self, transports: Dict[str, Transport]):
        self.transports = dict(transports)

    def fetch(self, source: SplitResult, dest: IO[bytes], options: FetchOptions) -> None:
        if not source.scheme and not source.path:
            copy_and_verify([], dest, options, source="empty source")
            return

        transport = self.transports.get(source.scheme)
        if transport is None:
            raise UnsupportedSourceError(f"unsupported source scheme {source.scheme!r}: {source.geturl()}")
        transport.fetch(source, dest, options)


def create_fetcher(settings, *, http_client=None) -> Fetcher:
    """
    Build the default Fetcher from settings.

    Args:
        settings: Settings with HTTP timeout/retry/TLS options
        http_client: Optional httpx.Client to use instead of a fresh one

    Returns:
        Fetcher handling http, https, data and file sources
    """
    http = HttpTransport(
        timeout_s=settings.http_timeout_s,
        retry=settings.http_retry,
        insecure=settings.http_insecure,
        user_agent=settings.user_agent,
        client=http_client,
    )
    logger.debug(
        f"HTTP transport timeout: {settings.http_timeout_s}s, retry: {settings.http_retry}, "
        f"insecure: {settings.http_insecure}"
    )
    return Fetcher({
        "http": http,
        "https": http,
        "data": DataUrlTransport(),
        "file": FileTransport(),
    })

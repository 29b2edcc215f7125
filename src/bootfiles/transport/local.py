"""
Transports that need no network: data: URLs and file: URLs.
"""
from __future__ import annotations

import base64
import binascii
import logging
from typing import IO, Iterator
from urllib.parse import SplitResult, unquote_to_bytes

from ..errors import FetchError
from ..fetch_types import FetchOptions
from .base import CHUNK_SIZE, copy_and_verify

__all__ = ["DataUrlTransport", "FileTransport", "decode_data_url"]

logger = logging.getLogger(__name__)


def decode_data_url(url: str) -> bytes:
    """
    Decode an RFC 2397 data URL.

    Examples:
        >>> decode_data_url("data:,hello%20world")
        b'hello world'

        >>> decode_data_url("data:text/plain;base64,aGVsbG8=")
        b'hello'

    Raises:
        FetchError: If the URL is not a well-formed data URL
    """
    if not url.startswith("data:"):
        raise FetchError(f"not a data URL: {url[:32]}")
    header, sep, payload = url[len("data:"):].partition(",")
    if not sep:
        raise FetchError("data URL has no ',' separator")

    if header.split(";")[-1].strip().lower() == "base64":
        try:
            return base64.b64decode(unquote_to_bytes(payload), validate=True)
        except (binascii.Error, ValueError) as e:
            raise FetchError(f"invalid base64 in data URL: {e}") from e
    return unquote_to_bytes(payload)


class DataUrlTransport:
    """Transport for data: sources; the content is the URL itself."""

    def fetch(self, source: SplitResult, dest: IO[bytes], options: FetchOptions) -> None:
        payload = decode_data_url(source.geturl())
        copy_and_verify([payload], dest, options, source="data URL")


class FileTransport:
    """Transport for file:// sources on the running system."""

    def fetch(self, source: SplitResult, dest: IO[bytes], options: FetchOptions) -> None:
        path = source.path
        if not path:
            raise FetchError(f"file URL has no path: {source.geturl()}")
        written = copy_and_verify(self._iter_file(path), dest, options, source=source.geturl())
        logger.debug(f"Copied {written} bytes from {path}")

    def _iter_file(self, path: str) -> Iterator[bytes]:
        try:
            with open(path, "rb") as f:
                while True:
                    chunk = f.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk
        except OSError as e:
            raise FetchError(f"Error reading {path}: {e}") from e

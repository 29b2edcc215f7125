"""
Streaming copy shared by all transports.

Every transport reduces its source to an iterable of raw byte chunks and hands
it to copy_and_verify(), which decompresses, tees each output byte into the
digest accumulator and checks the digest once the stream is exhausted.
"""
from __future__ import annotations

import logging
import zlib
from typing import IO, Iterable, Optional

import zstandard as zstd

from ..errors import DigestMismatchError, FetchError, UnsupportedSourceError
from ..fetch_types import FetchOptions

__all__ = ["CHUNK_SIZE", "HashingWriter", "copy_and_verify", "make_decoder"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB


class HashingWriter:
    """Writes to ``dest`` and feeds the same bytes to ``hasher``."""

    def __init__(self, dest: IO[bytes], hasher: Optional[object] = None):
        self._dest = dest
        self._hasher = hasher
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        self._dest.write(data)
        if self._hasher is not None:
            self._hasher.update(data)
        self.bytes_written += len(data)
        return len(data)


class _PlainDecoder:
    def feed(self, chunk: bytes) -> bytes:
        return chunk

    def finish(self) -> bytes:
        return b""


class _GzipDecoder:
    """Streaming gzip decoder; handles concatenated members."""

    def __init__(self):
        self._obj = zlib.decompressobj(16 + zlib.MAX_WBITS)

    def feed(self, chunk: bytes) -> bytes:
        out = []
        data = chunk
        while data:
            try:
                out.append(self._obj.decompress(data))
            except zlib.error as e:
                raise FetchError(f"invalid gzip stream: {e}") from e
            if not self._obj.eof:
                break
            data = self._obj.unused_data
            if data:
                self._obj = zlib.decompressobj(16 + zlib.MAX_WBITS)
        return b"".join(out)

    def finish(self) -> bytes:
        if not self._obj.eof:
            raise FetchError("truncated gzip stream")
        return self._obj.flush()


class _ZstdDecoder:
    """Streaming zstd decoder; handles concatenated frames."""

    def __init__(self):
        self._dctx = zstd.ZstdDecompressor()
        self._obj = self._dctx.decompressobj()

    def feed(self, chunk: bytes) -> bytes:
        out = []
        data = chunk
        while data:
            # A decompressobj decodes a single frame
            if self._obj.eof:
                self._obj = self._dctx.decompressobj()
            try:
                out.append(self._obj.decompress(data))
            except zstd.ZstdError as e:
                raise FetchError(f"invalid zstd stream: {e}") from e
            if not self._obj.eof:
                break
            data = self._obj.unused_data
        return b"".join(out)

    def finish(self) -> bytes:
        if not self._obj.eof:
            raise FetchError("truncated zstd stream")
        return self._obj.flush()


def make_decoder(compression: str):
    """
    Return a streaming decoder for the compression hint.

    Raises:
        UnsupportedSourceError: If the compression type is unknown
    """
    if not compression:
        return _PlainDecoder()
    if compression == "gzip":
        return _GzipDecoder()
    if compression == "zstd":
        return _ZstdDecoder()
    raise UnsupportedSourceError(f"unsupported compression: {compression!r}")


def copy_and_verify(
    chunks: Iterable[bytes],
    dest: IO[bytes],
    options: FetchOptions,
    *,
    source: str,
) -> int:
    """
    Decompress ``chunks`` into ``dest`` and verify the written bytes.

    The digest covers the decompressed bytes, i.e. exactly what lands in
    ``dest``.

    Args:
        chunks: Raw source bytes
        dest: Destination writer (the staging file)
        options: Hasher, compression and expected digest
        source: Source label for error messages

    Returns:
        Number of bytes written to dest

    Raises:
        FetchError: If decompression fails
        DigestMismatchError: If the digest differs from options.expected_sum
    """
    if options.expected_sum and options.hasher is None:
        raise FetchError(f"expected digest given for {source} without a hash function")

    decoder = make_decoder(options.compression)
    writer = HashingWriter(dest, options.hasher)

    for chunk in chunks:
        data = decoder.feed(chunk)
        if data:
            writer.write(data)
    tail = decoder.finish()
    if tail:
        writer.write(tail)

    if options.expected_sum:
        actual = options.hasher.digest()
        if actual != options.expected_sum:
            raise DigestMismatchError(source, options.expected_sum, actual)
        logger.debug(f"Verified {writer.bytes_written} bytes from {source}")

    return writer.bytes_written

"""
Tests for transports: data/file/http sources, decompression and verification.

HTTP tests use httpx.MockTransport so no network is needed.
"""
from __future__ import annotations

import gzip
import hashlib
import io
from urllib.parse import urlsplit

import httpx
import pytest
import zstandard as zstd

from bootfiles.errors import DigestMismatchError, FetchError, UnsupportedSourceError
from bootfiles.fetch_types import FetchOptions
from bootfiles.settings import Settings
from bootfiles.transport import Fetcher, create_fetcher
from bootfiles.transport.base import HashingWriter, copy_and_verify, make_decoder
from bootfiles.transport.http import HttpTransport
from bootfiles.transport.local import DataUrlTransport, FileTransport, decode_data_url


def _verify(data: bytes, algorithm: str = "sha512") -> FetchOptions:
    hasher = hashlib.new(algorithm)
    return FetchOptions(hasher=hasher, expected_sum=hashlib.new(algorithm, data).digest())


class TestCopyAndVerify:
    """Test the shared streaming copy."""

    def test_tee_feeds_hasher(self):
        dest = io.BytesIO()
        hasher = hashlib.sha256()
        writer = HashingWriter(dest, hasher)
        writer.write(b"abc")
        writer.write(b"def")
        assert dest.getvalue() == b"abcdef"
        assert hasher.digest() == hashlib.sha256(b"abcdef").digest()
        assert writer.bytes_written == 6

    def test_matching_digest(self):
        dest = io.BytesIO()
        written = copy_and_verify([b"hello ", b"world"], dest, _verify(b"hello world"), source="test")
        assert written == 11
        assert dest.getvalue() == b"hello world"

    def test_mismatch_raises(self):
        dest = io.BytesIO()
        with pytest.raises(DigestMismatchError) as exc_info:
            copy_and_verify([b"tampered"], dest, _verify(b"original"), source="test")
        err = exc_info.value
        assert err.expected == hashlib.sha512(b"original").digest()
        assert err.actual == hashlib.sha512(b"tampered").digest()
        assert isinstance(err, FetchError)

    def test_no_verification(self):
        dest = io.BytesIO()
        copy_and_verify([b"anything"], dest, FetchOptions(), source="test")
        assert dest.getvalue() == b"anything"

    def test_expected_sum_without_hasher_rejected(self):
        with pytest.raises(FetchError, match="without a hash function"):
            copy_and_verify([b"x"], io.BytesIO(), FetchOptions(expected_sum=b"\x00" * 32), source="test")

    def test_digest_covers_decompressed_bytes(self):
        payload = b"line\n" * 1000
        compressed = gzip.compress(payload)
        dest = io.BytesIO()
        options = FetchOptions(
            hasher=hashlib.sha512(),
            compression="gzip",
            expected_sum=hashlib.sha512(payload).digest(),
        )
        copy_and_verify([compressed[:100], compressed[100:]], dest, options, source="test")
        assert dest.getvalue() == payload


class TestDecoders:
    """Test streaming decompression."""

    def test_gzip_multi_member(self):
        data = gzip.compress(b"first ") + gzip.compress(b"second")
        decoder = make_decoder("gzip")
        out = decoder.feed(data[:7]) + decoder.feed(data[7:]) + decoder.finish()
        assert out == b"first second"

    def test_gzip_truncated(self):
        data = gzip.compress(b"x" * 10000)
        decoder = make_decoder("gzip")
        decoder.feed(data[: len(data) // 2])
        with pytest.raises(FetchError, match="truncated"):
            decoder.finish()

    def test_gzip_garbage(self):
        with pytest.raises(FetchError, match="invalid gzip"):
            make_decoder("gzip").feed(b"definitely not gzip")

    def test_zstd(self):
        payload = b"zstd payload " * 100
        data = zstd.ZstdCompressor().compress(payload)
        decoder = make_decoder("zstd")
        out = b"".join(decoder.feed(data[i:i + 16]) for i in range(0, len(data), 16)) + decoder.finish()
        assert out == payload

    def test_zstd_multi_frame(self):
        cctx = zstd.ZstdCompressor()
        data = cctx.compress(b"one") + cctx.compress(b"two")
        dest = io.BytesIO()
        copy_and_verify([data], dest, FetchOptions(compression="zstd"), source="test")
        assert dest.getvalue() == b"onetwo"

    def test_zstd_frames_split_across_chunks(self):
        cctx = zstd.ZstdCompressor()
        first, second = cctx.compress(b"first " * 50), cctx.compress(b"second " * 50)
        data = first + second
        cut = len(first) + 3
        dest = io.BytesIO()
        copy_and_verify([data[:len(first)], data[len(first):cut], data[cut:]], dest,
                        FetchOptions(compression="zstd"), source="test")
        assert dest.getvalue() == b"first " * 50 + b"second " * 50

    def test_zstd_truncated(self):
        data = zstd.ZstdCompressor().compress(b"y" * 10000)
        with pytest.raises(FetchError, match="truncated zstd"):
            copy_and_verify([data[: len(data) // 2]], io.BytesIO(), FetchOptions(compression="zstd"),
                            source="test")

    def test_zstd_garbage(self):
        with pytest.raises(FetchError, match="invalid zstd"):
            make_decoder("zstd").feed(b"definitely not zstd")

    def test_unknown_compression(self):
        with pytest.raises(UnsupportedSourceError):
            make_decoder("bzip2")


class TestDataUrls:
    """Test RFC 2397 data URL handling."""

    def test_plain(self):
        assert decode_data_url("data:,hello%20world") == b"hello world"

    def test_base64(self):
        assert decode_data_url("data:text/plain;charset=utf-8;base64,aGVsbG8=") == b"hello"

    def test_invalid_base64(self):
        with pytest.raises(FetchError):
            decode_data_url("data:;base64,@@@")

    def test_missing_comma(self):
        with pytest.raises(FetchError):
            decode_data_url("data:text/plain")

    def test_transport_verifies(self):
        dest = io.BytesIO()
        DataUrlTransport().fetch(urlsplit("data:,example"), dest, _verify(b"example"))
        assert dest.getvalue() == b"example"

    def test_transport_mismatch(self):
        with pytest.raises(DigestMismatchError):
            DataUrlTransport().fetch(urlsplit("data:,example"), io.BytesIO(), _verify(b"other"))


class TestFileTransport:
    """Test file:// sources."""

    def test_reads_file(self, tmp_path):
        src = tmp_path / "src.bin"
        src.write_bytes(b"\x00\x01" * 1000)
        dest = io.BytesIO()
        FileTransport().fetch(urlsplit(src.as_uri()), dest, _verify(src.read_bytes()))
        assert dest.getvalue() == src.read_bytes()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FetchError, match="Error reading"):
            FileTransport().fetch(urlsplit((tmp_path / "nope").as_uri()), io.BytesIO(), FetchOptions())


class TestHttpTransport:
    """Test http(s) sources against a mock transport."""

    def _client(self, handler) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(handler))

    def test_streams_body(self):
        payload = b"remote content " * 500
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, content=payload)

        dest = io.BytesIO()
        with HttpTransport(client=self._client(handler)) as http:
            http.fetch(urlsplit("http://example.com/file"), dest, _verify(payload))

        assert dest.getvalue() == payload
        assert seen == ["http://example.com/file"]

    def test_compressed_source(self):
        payload = b"compressed remote content\n" * 200

        def handler(request):
            return httpx.Response(200, content=zstd.ZstdCompressor().compress(payload))

        options = FetchOptions(hasher=hashlib.sha512(), compression="zstd",
                               expected_sum=hashlib.sha512(payload).digest())
        dest = io.BytesIO()
        HttpTransport(client=self._client(handler)).fetch(urlsplit("https://example.com/f.zst"), dest, options)
        assert dest.getvalue() == payload

    def test_not_found(self):
        http = HttpTransport(client=self._client(lambda request: httpx.Response(404)))
        with pytest.raises(FetchError, match="Not found"):
            http.fetch(urlsplit("http://example.com/missing"), io.BytesIO(), FetchOptions())

    def test_server_error(self):
        http = HttpTransport(client=self._client(lambda request: httpx.Response(500)))
        with pytest.raises(FetchError, match="HTTP error 500"):
            http.fetch(urlsplit("http://example.com/broken"), io.BytesIO(), FetchOptions())

    def test_digest_mismatch(self):
        http = HttpTransport(client=self._client(lambda request: httpx.Response(200, content=b"evil")))
        with pytest.raises(DigestMismatchError):
            http.fetch(urlsplit("http://example.com/f"), io.BytesIO(), _verify(b"good"))

    def test_connect_error_retried(self):
        """Test that connection errors are retried up to the configured count."""
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) < 3:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, content=b"ok")

        dest = io.BytesIO()
        http = HttpTransport(retry=2, backoff_s=0, client=self._client(handler))
        http.fetch(urlsplit("http://example.com/flaky"), dest, FetchOptions())

        assert len(attempts) == 3
        assert dest.getvalue() == b"ok"

    def test_connect_error_without_retry(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            raise httpx.ConnectError("refused", request=request)

        http = HttpTransport(retry=0, client=self._client(handler))
        with pytest.raises(FetchError, match="Network error"):
            http.fetch(urlsplit("http://example.com/down"), io.BytesIO(), FetchOptions())
        assert len(attempts) == 1


class TestFetcher:
    """Test scheme dispatch."""

    def test_empty_source_writes_nothing(self):
        dest = io.BytesIO()
        Fetcher({}).fetch(urlsplit(""), dest, _verify(b""))
        assert dest.getvalue() == b""

    def test_unsupported_scheme(self):
        with pytest.raises(UnsupportedSourceError, match="tftp"):
            Fetcher({}).fetch(urlsplit("tftp://host/file"), io.BytesIO(), FetchOptions())

    def test_create_fetcher_routes_schemes(self):
        def handler(request):
            return httpx.Response(200, content=b"via http")

        fetcher = create_fetcher(Settings(), http_client=httpx.Client(transport=httpx.MockTransport(handler)))
        assert set(fetcher.transports) == {"http", "https", "data", "file"}

        dest = io.BytesIO()
        fetcher.fetch(urlsplit("https://example.com/x"), dest, FetchOptions())
        assert dest.getvalue() == b"via http"

        dest = io.BytesIO()
        fetcher.fetch(urlsplit("data:,via%20data"), dest, FetchOptions())
        assert dest.getvalue() == b"via data"

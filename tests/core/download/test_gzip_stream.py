"""Tests for incremental gzip decoding."""

import gzip

import pytest

from core.download.gzip_stream import GzipStreamDecoder
from core.errors.exceptions import DecompressionError

PAYLOAD = b"".join(
    f'{{"adult":false,"id":{i},"original_title":"Title {i}","popularity":0.6,"video":false}}\n'.encode()
    for i in range(2000)
)


def _chunks(data: bytes, size: int):
    return [data[i : i + size] for i in range(0, len(data), size)]


class TestGzipStreamDecoder:
    @pytest.mark.parametrize("chunk_size", [1, 7, 512, 1 << 20])
    def test_decodes_regardless_of_chunk_boundaries(self, chunk_size):
        compressed = gzip.compress(PAYLOAD)
        decoder = GzipStreamDecoder()

        output = b"".join(decoder.feed(chunk) for chunk in _chunks(compressed, chunk_size))
        output += decoder.finish()

        assert output == PAYLOAD
        assert decoder.bytes_in == len(compressed)
        assert decoder.bytes_out == len(PAYLOAD)

    def test_concatenated_members(self):
        compressed = gzip.compress(b"first\n") + gzip.compress(b"second\n")
        decoder = GzipStreamDecoder()

        output = decoder.feed(compressed) + decoder.finish()

        assert output == b"first\nsecond\n"

    def test_member_ending_on_chunk_boundary(self):
        first = gzip.compress(b"first\n")
        second = gzip.compress(b"second\n")
        decoder = GzipStreamDecoder()

        output = decoder.feed(first) + decoder.feed(second) + decoder.finish()

        assert output == b"first\nsecond\n"

    def test_empty_chunk_is_ignored(self):
        decoder = GzipStreamDecoder()

        assert decoder.feed(b"") == b""
        assert decoder.bytes_in == 0

    def test_invalid_data_raises(self):
        decoder = GzipStreamDecoder()

        with pytest.raises(DecompressionError):
            decoder.feed(b"this is not gzip at all")

    def test_truncated_stream_raises_on_finish(self):
        compressed = gzip.compress(PAYLOAD)
        decoder = GzipStreamDecoder()
        decoder.feed(compressed[: len(compressed) // 2])

        with pytest.raises(DecompressionError, match="Truncated"):
            decoder.finish()

    def test_empty_stream_raises_on_finish(self):
        with pytest.raises(DecompressionError, match="Empty"):
            GzipStreamDecoder().finish()


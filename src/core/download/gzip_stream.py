"""
Incremental gzip decoding for streamed downloads.

Bulk export files are tens of megabytes compressed, so they are decoded
chunk by chunk as they arrive instead of being buffered whole.
"""

import zlib

from core.errors.exceptions import DecompressionError

# wbits for zlib: 16 + MAX_WBITS selects the gzip container format
GZIP_WBITS = 16 + zlib.MAX_WBITS


class GzipStreamDecoder:
    """
    Feed compressed chunks in, get decompressed bytes out.

    Handles concatenated gzip members (``cat a.gz b.gz``), which is valid
    gzip and decodes to the concatenated payloads.

    Example:
        decoder = GzipStreamDecoder()
        for chunk in chunks:
            out.write(decoder.feed(chunk))
        out.write(decoder.finish())
    """

    def __init__(self):
        self._decompressor = zlib.decompressobj(GZIP_WBITS)
        self._bytes_in = 0
        self._bytes_out = 0
        self._saw_input = False

    @property
    def bytes_in(self) -> int:
        return self._bytes_in

    @property
    def bytes_out(self) -> int:
        return self._bytes_out

    def feed(self, chunk: bytes) -> bytes:
        if not chunk:
            return b""

        self._saw_input = True
        self._bytes_in += len(chunk)
        if self._decompressor.eof:
            # Previous member ended exactly on a chunk boundary
            self._decompressor = zlib.decompressobj(GZIP_WBITS)
        output = []
        data = chunk
        try:
            while data:
                output.append(self._decompressor.decompress(data))
                if not self._decompressor.eof:
                    break
                # Start of the next gzip member, if any
                data = self._decompressor.unused_data
                if data:
                    self._decompressor = zlib.decompressobj(GZIP_WBITS)
        except zlib.error as e:
            raise DecompressionError(
                f"Invalid gzip data after {self._bytes_in} compressed bytes",
                cause=e,
            ) from e

        result = b"".join(output)
        self._bytes_out += len(result)
        return result

    def finish(self) -> bytes:
        """Flush remaining output and verify the stream ended on a member boundary."""
        if not self._saw_input:
            raise DecompressionError("Empty gzip stream")

        try:
            tail = self._decompressor.flush()
        except zlib.error as e:
            raise DecompressionError("Invalid gzip trailer", cause=e) from e

        if not self._decompressor.eof:
            raise DecompressionError(
                f"Truncated gzip stream after {self._bytes_in} compressed bytes"
            )

        self._bytes_out += len(tail)
        return tail

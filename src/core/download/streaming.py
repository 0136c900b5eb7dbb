"""
Streaming download of gzip payloads straight to disk.

The compressed body is read in chunks, decoded incrementally and written
to a temporary file next to the destination, which is renamed into place
only after the gzip trailer checks out. A failed run therefore never
leaves a partial file under the final name.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import aiohttp

from core.download.gzip_stream import GzipStreamDecoder
from core.download.http_client import bearer_headers, raise_for_status
from core.errors.exceptions import ErrorCategory, NetworkError

logger = logging.getLogger(__name__)

# Download configuration constants
CHUNK_SIZE = 1024 * 1024  # 1MB compressed chunks
FILE_MODE = 0o600


@dataclass
class DownloadToFileResult:
    """
    Result from download_gzip_to_file.

    Attributes:
        path: Final file path
        bytes_downloaded: Compressed bytes received
        bytes_written: Decompressed bytes written to the file
    """

    path: Path
    bytes_downloaded: int
    bytes_written: int


def _write_chunk(handle, data: bytes) -> None:
    if data:
        handle.write(data)


async def download_gzip_to_file(
    url: str,
    destination: Path,
    session: aiohttp.ClientSession,
    token: str | None = None,
    chunk_size: int = CHUNK_SIZE,
    sock_read_timeout: float = 60,
) -> DownloadToFileResult:
    """
    GET a gzip file and persist its decompressed content at ``destination``.

    Args:
        url: URL of the .gz file
        destination: Final path of the decompressed file (parent must exist)
        session: aiohttp ClientSession (caller manages lifecycle)
        token: Bearer token
        chunk_size: Compressed bytes per read
        sock_read_timeout: Max seconds between socket reads

    Raises:
        NetworkError: Connection failure, stalled read, or non-2xx status
        DecompressionError: Body is not a valid, complete gzip stream
        OSError: Destination could not be written
    """
    destination = Path(destination)
    tmp_path = destination.with_name(destination.name + ".tmp")
    decoder = GzipStreamDecoder()

    try:
        async with session.get(
            url,
            headers=bearer_headers(token),
            timeout=aiohttp.ClientTimeout(total=None, sock_read=sock_read_timeout),
        ) as response:
            await raise_for_status(response, url)

            handle = await asyncio.to_thread(open, tmp_path, "wb")
            try:
                async for chunk in response.content.iter_chunked(chunk_size):
                    # Disk I/O off the event loop
                    await asyncio.to_thread(_write_chunk, handle, decoder.feed(chunk))
                await asyncio.to_thread(_write_chunk, handle, decoder.finish())
            finally:
                await asyncio.to_thread(handle.close)

        await asyncio.to_thread(os.chmod, tmp_path, FILE_MODE)
        await asyncio.to_thread(os.replace, tmp_path, destination)

    except asyncio.TimeoutError as e:
        raise NetworkError(
            f"Download stalled for more than {sock_read_timeout}s: {url}",
            url=url,
            category=ErrorCategory.TRANSIENT,
            cause=e,
        ) from e

    except aiohttp.ClientError as e:
        raise NetworkError(
            f"Connection error while downloading {url}",
            url=url,
            category=ErrorCategory.TRANSIENT,
            cause=e,
        ) from e

    finally:
        if tmp_path.exists():
            tmp_path.unlink()

    logger.debug(
        "Downloaded and decompressed file",
        extra={
            "download_url": url,
            "output_path": str(destination),
            "bytes_written": decoder.bytes_out,
        },
    )

    return DownloadToFileResult(
        path=destination,
        bytes_downloaded=decoder.bytes_in,
        bytes_written=decoder.bytes_out,
    )


__all__ = [
    "CHUNK_SIZE",
    "DownloadToFileResult",
    "download_gzip_to_file",
]

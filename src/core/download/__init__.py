"""
Async download helpers with a small interface.

Components:
    - http_client: Session creation and authenticated GET of text bodies
    - gzip_stream: Incremental gzip decoding
    - streaming: Stream a gzip download to disk, decoded

Example usage:
    from core.download import create_session, download_gzip_to_file

    async with create_session(timeout_total=None) as session:
        result = await download_gzip_to_file(url, Path("movie.json"), session, token)
        print(f"Wrote {result.bytes_written} bytes")
"""

from core.download.gzip_stream import GzipStreamDecoder
from core.download.http_client import (
    TextResponse,
    bearer_headers,
    create_session,
    fetch_text,
    raise_for_status,
)
from core.download.streaming import (
    CHUNK_SIZE,
    DownloadToFileResult,
    download_gzip_to_file,
)

__all__ = [
    # HTTP client
    "create_session",
    "fetch_text",
    "bearer_headers",
    "raise_for_status",
    "TextResponse",
    # Gzip
    "GzipStreamDecoder",
    # Streaming
    "download_gzip_to_file",
    "DownloadToFileResult",
    "CHUNK_SIZE",
]

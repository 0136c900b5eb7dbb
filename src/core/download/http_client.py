"""
Core HTTP client helpers using aiohttp.

Provides session creation and authenticated GET requests without
domain-specific coupling. Failures are raised as NetworkError carrying the
HTTP status (if any) and an error category; there is no retry loop here,
retries belong to the job runner or the queue's redelivery.
"""

import asyncio
import logging
from dataclasses import dataclass

import aiohttp

from core.errors.exceptions import ErrorCategory, NetworkError

logger = logging.getLogger(__name__)

# Error bodies are truncated before they go into exception messages
MAX_ERROR_BODY_CHARS = 500


@dataclass
class TextResponse:
    """Successful GET with the decoded body."""

    url: str
    status_code: int
    text: str
    content_type: str | None = None


def bearer_headers(token: str | None) -> dict[str, str]:
    """Authorization header for a bearer token (empty dict when no token)."""
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


async def raise_for_status(response: aiohttp.ClientResponse, url: str) -> None:
    """Raise NetworkError for any non-2xx response, including a body excerpt."""
    if 200 <= response.status < 300:
        return

    try:
        body = await response.text()
    except (aiohttp.ClientError, UnicodeDecodeError):
        body = "<unable to read response body>"
    if len(body) > MAX_ERROR_BODY_CHARS:
        body = body[:MAX_ERROR_BODY_CHARS] + "..."

    raise NetworkError(
        f"HTTP {response.status} from {url}: {body}",
        url=url,
        status_code=response.status,
    )


async def fetch_text(
    url: str,
    session: aiohttp.ClientSession,
    token: str | None = None,
    timeout: float = 30,
) -> TextResponse:
    """
    Authenticated GET returning the response body as text.

    Args:
        url: Fully-resolved URL
        session: aiohttp ClientSession (caller manages lifecycle)
        token: Bearer token, sent as ``Authorization: Bearer <token>``
        timeout: Total timeout in seconds

    Raises:
        NetworkError: Connection failure, timeout, or non-2xx status
    """
    try:
        async with session.get(
            url,
            headers=bearer_headers(token),
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as response:
            await raise_for_status(response, url)
            text = await response.text()
            return TextResponse(
                url=url,
                status_code=response.status,
                text=text,
                content_type=response.headers.get("Content-Type"),
            )

    except asyncio.TimeoutError as e:
        raise NetworkError(
            f"Timeout after {timeout}s: {url}",
            url=url,
            category=ErrorCategory.TRANSIENT,
            cause=e,
        ) from e

    except aiohttp.ClientError as e:
        raise NetworkError(
            f"Connection error: {url}",
            url=url,
            category=ErrorCategory.TRANSIENT,
            cause=e,
        ) from e


def create_session(
    max_connections: int = 100,
    max_connections_per_host: int = 10,
    timeout_total: float | None = 300,
    timeout_connect: float = 30,
    timeout_sock_read: float = 60,
) -> aiohttp.ClientSession:
    """
    Create aiohttp ClientSession with connection pooling and timeouts.

    Timeout configuration prevents indefinite hangs:
    - timeout_total: Total time for the entire request (None for no limit,
      used for bulk downloads that are bounded by sock_read instead)
    - timeout_connect: Time to establish connection
    - timeout_sock_read: Max time between reads

    Note:
        Caller is responsible for session lifecycle management.
        Use async context manager for automatic cleanup:

        async with create_session() as session:
            response = await fetch_text(url, session, token)
    """
    connector = aiohttp.TCPConnector(
        limit=max_connections,
        limit_per_host=max_connections_per_host,
        ttl_dns_cache=300,
    )

    timeout = aiohttp.ClientTimeout(
        total=timeout_total,
        connect=timeout_connect,
        sock_read=timeout_sock_read,
    )

    return aiohttp.ClientSession(connector=connector, timeout=timeout)


__all__ = [
    "TextResponse",
    "bearer_headers",
    "raise_for_status",
    "fetch_text",
    "create_session",
]

"""Concurrent detail fetches for one entity."""

import asyncio
import logging
from dataclasses import dataclass

import aiohttp

from core.download.http_client import fetch_text
from core.errors.exceptions import NetworkError
from tmdb_pipeline.common.metrics import record_detail_fetch
from tmdb_pipeline.fanout.catalog import DetailEndpoint
from tmdb_pipeline.schemas.models import DetailRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedDetail:
    response_type: str
    url: str
    body: str


class DetailFetcher:
    """
    Fetches every endpoint of an entity type at once.

    All-or-nothing: the first failed fetch cancels the others and is
    raised, so a caller never sees a partial facet set.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: str,
        timeout_seconds: float = 10,
    ):
        self.session = session
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    async def fetch_one(self, request: DetailRequest, endpoint: DetailEndpoint) -> FetchedDetail:
        url = endpoint.url_for(request.id)
        try:
            response = await fetch_text(
                url, self.session, token=self.api_key, timeout=self.timeout_seconds
            )
        except NetworkError:
            record_detail_fetch(endpoint.response_type, success=False)
            raise

        record_detail_fetch(endpoint.response_type, success=True)
        logger.debug(
            "Fetched detail",
            extra={
                "entity_id": request.id,
                "response_type": endpoint.response_type,
                "api_url": url,
                "http_status": response.status_code,
            },
        )
        return FetchedDetail(response_type=endpoint.response_type, url=url, body=response.text)

    async def fetch_all(
        self, request: DetailRequest, endpoints: tuple[DetailEndpoint, ...] | list[DetailEndpoint]
    ) -> list[FetchedDetail]:
        """
        Fetch all endpoints concurrently; results keep the catalog's order.

        Raises:
            NetworkError: Any fetch failed (connection, timeout, non-2xx)
        """
        if not endpoints:
            return []

        tasks = [
            asyncio.create_task(
                self.fetch_one(request, endpoint), name=f"fetch-{endpoint.response_type}"
            )
            for endpoint in endpoints
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                if task.exception() is not None:
                    raise task.exception()
            return [task.result() for task in tasks]
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

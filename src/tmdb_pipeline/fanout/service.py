"""
Detail Fan-out: one push message in, one DetailRecord per facet out.

Per request: decoded -> validated -> fetching -> encoding -> publishing.
Validation failures are client errors; everything after validation is
all-or-nothing up to the publish stage, where failures are only counted.
"""

import logging
from dataclasses import dataclass

from core.errors.exceptions import EncodingError, ValidationError
from tmdb_pipeline.common.encoder import RecordEncoder
from tmdb_pipeline.common.producer import MessageProducer
from tmdb_pipeline.fanout.catalog import EndpointCatalog
from tmdb_pipeline.fanout.fetcher import DetailFetcher
from tmdb_pipeline.schemas.models import DetailRecord, DetailRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportSummary:
    """Counts reported back to the push subscription."""

    request_count: int
    message_count: int
    failure_count: int

    def to_text(self) -> str:
        return (
            f"API Requests: {self.request_count}, "
            f"Messages Sent: {self.message_count}, "
            f"Failed Messages: {self.failure_count}"
        )


class DetailExportService:
    """
    Executes the fan-out for one DetailRequest at a time.

    Holds only read-only state (catalog, parsed schema) plus the shared
    producer and HTTP session, so concurrent requests need no locking.

    ``schema_error`` is set when the configured topic schema could not be
    parsed at startup. The service keeps running and fails each request
    with it instead, since the schema arrives through configuration.
    """

    def __init__(
        self,
        catalog: EndpointCatalog,
        fetcher: DetailFetcher,
        producer: MessageProducer,
        topic: str,
        encoder: RecordEncoder | None = None,
        schema_error: EncodingError | None = None,
    ):
        if encoder is None and schema_error is None:
            raise ValueError("Either encoder or schema_error is required")
        self.catalog = catalog
        self.fetcher = fetcher
        self.producer = producer
        self.topic = topic
        self.encoder = encoder
        self.schema_error = schema_error

    async def handle(self, request: DetailRequest) -> ExportSummary:
        """
        Fetch, encode and publish every facet for one entity.

        Raises:
            ValidationError: Type missing from the catalog, or has no endpoints
            NetworkError: A detail fetch failed (nothing is published)
            EncodingError: Schema unusable or a record does not conform
        """
        endpoints = self.catalog.endpoints_for(request.type)
        if not endpoints:
            raise ValidationError(
                f"Unable to find type '{request.type}' in the API endpoint list",
                context={"entity_type": request.type},
            )

        if self.encoder is None:
            raise self.schema_error

        fetched = await self.fetcher.fetch_all(request, endpoints)

        payloads = [
            self.encoder.encode(
                DetailRecord.from_response(request, item.response_type, item.body).to_fields()
            )
            for item in fetched
        ]

        pending = await self.producer.submit_all(self.topic, payloads)
        outcome = await self.producer.await_all(pending)

        summary = ExportSummary(
            request_count=len(fetched),
            message_count=len(pending),
            failure_count=outcome.failure_count,
        )
        logger.info(
            "Export request complete",
            extra={
                "entity_id": request.id,
                "entity_type": request.type,
                "request_count": summary.request_count,
                "message_count": summary.message_count,
                "failure_count": summary.failure_count,
            },
        )
        return summary

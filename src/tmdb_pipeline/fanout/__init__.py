"""Detail Fan-out service: push-triggered detail fetch and publish."""

from tmdb_pipeline.fanout.catalog import DetailEndpoint, EndpointCatalog
from tmdb_pipeline.fanout.envelope import decode_push_envelope
from tmdb_pipeline.fanout.fetcher import DetailFetcher, FetchedDetail
from tmdb_pipeline.fanout.service import DetailExportService, ExportSummary

__all__ = [
    "DetailEndpoint",
    "DetailExportService",
    "DetailFetcher",
    "EndpointCatalog",
    "ExportSummary",
    "FetchedDetail",
    "decode_push_envelope",
]

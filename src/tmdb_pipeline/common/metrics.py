"""
Prometheus metrics for both processes.

Focused on the counts the pipeline reports anyway:
- Messages published / failed per topic
- Bulk lines that failed to parse
- Detail fetches per response type
- Export requests per outcome and their duration

The fan-out service serves the default registry at /metrics; the batch job
records into it without serving it.
"""

from prometheus_client import Counter, Gauge, Histogram

messages_produced_total = Counter(
    "tmdb_pipeline_messages_produced_total",
    "Messages published to the queue",
    ["topic", "status"],
)

message_bytes_produced_total = Counter(
    "tmdb_pipeline_message_bytes_produced_total",
    "Encoded payload bytes submitted to the queue",
    ["topic"],
)

producer_connected = Gauge(
    "tmdb_pipeline_producer_connected",
    "1 while the queue producer is started",
)

bulk_records_failed_total = Counter(
    "tmdb_pipeline_bulk_records_failed_total",
    "Bulk export lines that could not be parsed",
    ["export_type"],
)

bulk_bytes_written_total = Counter(
    "tmdb_pipeline_bulk_bytes_written_total",
    "Decompressed bulk export bytes persisted",
    ["export_type"],
)

detail_fetches_total = Counter(
    "tmdb_pipeline_detail_fetches_total",
    "Detail endpoint fetches",
    ["response_type", "status"],
)

export_requests_total = Counter(
    "tmdb_pipeline_export_requests_total",
    "Fan-out export requests by outcome",
    ["outcome"],
)

export_request_duration_seconds = Histogram(
    "tmdb_pipeline_export_request_duration_seconds",
    "Fan-out export request duration",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


def record_messages_produced(topic: str, succeeded: int, failed: int) -> None:
    if succeeded:
        messages_produced_total.labels(topic=topic, status="success").inc(succeeded)
    if failed:
        messages_produced_total.labels(topic=topic, status="error").inc(failed)


def record_detail_fetch(response_type: str, success: bool) -> None:
    detail_fetches_total.labels(
        response_type=response_type, status="success" if success else "error"
    ).inc()


def update_connection_status(connected: bool) -> None:
    producer_connected.set(1 if connected else 0)

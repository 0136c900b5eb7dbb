"""Bulk Exporter: daily ID export files to the trigger topic."""

from tmdb_pipeline.backfill.exporter import (
    BulkExporter,
    UnitOutcome,
    bulk_export_url,
    create_output_path,
    parse_export_line,
)

__all__ = [
    "BulkExporter",
    "UnitOutcome",
    "bulk_export_url",
    "create_output_path",
    "parse_export_line",
]

"""
TMDB export pipeline.

Two processes share this package:
- backfill: daily Bulk Exporter job (download, persist, publish trigger records)
- fanout: Detail Fan-out HTTP service (fetch detail facets, publish detail records)
"""

__version__ = "0.1.0"

"""
Export date resolution.

TMDB publishes the daily ID export files starting at around 07:00 UTC and
all files are available by 08:00 UTC, so before 08:00 the latest complete
snapshot is yesterday's.
"""

import logging
from datetime import UTC, date, datetime, timedelta

logger = logging.getLogger(__name__)

EXPORT_DATE_FORMAT = "%Y-%m-%d"
EXPORT_FILE_DATE_FORMAT = "%m_%d_%Y"
EXPORTS_AVAILABLE_HOUR_UTC = 8


def resolve_export_date(override: str | None = None, now: datetime | None = None) -> date:
    """
    Resolve the export date for a run.

    Args:
        override: Optional ``YYYY-MM-DD`` string. Used as-is when it parses.
        now: Current time (defaults to the wall clock); naive values are
            treated as UTC.

    Returns:
        The override date, or today's UTC date (yesterday's before 08:00 UTC)
        when the override is empty or unparsable.
    """
    if override:
        try:
            return datetime.strptime(override.strip(), EXPORT_DATE_FORMAT).date()
        except ValueError:
            logger.warning(
                "Ignoring unparsable export date override",
                extra={"export_date": override},
            )

    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    else:
        now = now.astimezone(UTC)

    if now.hour < EXPORTS_AVAILABLE_HOUR_UTC:
        now = now - timedelta(days=1)
    return now.date()


def format_export_date(value: date) -> str:
    """``YYYY-MM-DD``, the form used in records and output paths."""
    return value.strftime(EXPORT_DATE_FORMAT)


def format_file_date(value: date) -> str:
    """``MM_DD_YYYY``, the form used in TMDB export file names."""
    return value.strftime(EXPORT_FILE_DATE_FORMAT)

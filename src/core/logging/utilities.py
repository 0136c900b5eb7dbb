"""Helpers for attaching structured fields to log calls."""

import logging
from typing import Any

from core.errors.exceptions import NetworkError, classify_exception

# Attributes every LogRecord already has; an extra with one of these names
# makes logging raise KeyError, so they are dropped instead.
_RESERVED_LOG_KEYS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

MAX_ERROR_MESSAGE_CHARS = 500


def _safe_extra(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if k not in _RESERVED_LOG_KEYS}


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log ``msg`` with keyword arguments as structured extras.

    ``exc_info`` is passed through to the logger rather than stored as a field.

    Example:
        log_with_context(
            logger, logging.INFO, "Export unit published",
            export_type="movie",
            messages_published=1200,
        )
    """
    exc_info = kwargs.pop("exc_info", None)
    logger.log(level, msg, exc_info=exc_info, extra=_safe_extra(kwargs))


def error_fields(exc: BaseException) -> dict[str, Any]:
    """Structured description of an exception: type, truncated message, category, status."""
    message = str(exc)
    if len(message) > MAX_ERROR_MESSAGE_CHARS:
        message = message[:MAX_ERROR_MESSAGE_CHARS] + "..."

    fields: dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": message,
        "error_category": classify_exception(exc).value,
    }
    if isinstance(exc, NetworkError) and exc.status_code is not None:
        fields["http_status"] = exc.status_code
    return fields


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log an exception with its error fields and, optionally, its traceback.

    Expected failures (bad configuration, rejected requests) pass
    ``include_traceback=False``; the traceback adds nothing there.

    Example:
        try:
            await exporter.run()
        except PipelineError as e:
            log_exception(logger, e, "Backfill failed", export_date="2024-07-01")
    """
    fields = {**error_fields(exc), **kwargs}
    logger.log(
        level,
        msg,
        exc_info=exc if include_traceback else None,
        extra=_safe_extra(fields),
    )

"""Context managers for structured logging."""

import logging
import time
from contextlib import contextmanager
from typing import Any

from core.logging.context import get_log_context, set_log_context
from core.logging.utilities import error_fields, log_with_context


class LogContext:
    """
    Bind log context fields for the duration of a block.

    Fields left as None keep their current value. On exit every field is
    restored, so nested blocks and failed requests leave no trace.

    Usage:
        with LogContext(request_id=envelope.message.message_id):
            await service.handle(request)
    """

    def __init__(
        self,
        stage: str | None = None,
        task_index: str | None = None,
        request_id: str | None = None,
    ):
        self._bound = {"stage": stage, "task_index": task_index, "request_id": request_id}
        self._saved: dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self._saved = get_log_context()
        set_log_context(**self._bound)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_log_context(**self._saved)
        return False


@contextmanager
def log_phase(
    logger: logging.Logger,
    phase: str,
    level: int = logging.DEBUG,
    **context: Any,
):
    """
    Time one phase of a unit of work.

    Logs ``Phase complete: <phase>`` at ``level`` with ``duration_ms``, or
    ``Phase failed: <phase>`` at WARNING with the error fields when the
    block raises. The exception always propagates.

    Example:
        with log_phase(logger, "download", export_type="movie"):
            await download_gzip_to_file(url, path, session, token)
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        log_with_context(
            logger,
            logging.WARNING,
            f"Phase failed: {phase}",
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
            **error_fields(e),
            **context,
        )
        raise
    log_with_context(
        logger,
        level,
        f"Phase complete: {phase}",
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
        **context,
    )

"""Logging setup and configuration."""

import io
import logging
import sys

from core.logging.context import clear_log_context, set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_LEVEL = logging.INFO

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "aiohttp.access",
    "aiohttp.client",
    "aiokafka",
    "asyncio",
]


def _parse_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else DEFAULT_LEVEL


def setup_logging(
    name: str = "tmdb_pipeline",
    stage: str | None = None,
    task_index: str | None = None,
    json_format: bool = True,
    level: int | str = DEFAULT_LEVEL,
    suppress_noisy: bool = True,
    stream: io.TextIOBase | None = None,
) -> logging.Logger:
    """
    Configure process-wide logging once, at process start.

    Both processes run in containers whose stdout is shipped to the log
    collector, so there is a single stdout handler. JSON lines carry no
    prefix (timestamps are part of the entry) so each line parses as JSON.

    Args:
        name: Logger name returned to the caller
        stage: Stage name added to every entry ("backfill" or "fanout")
        task_index: Job task index added to every entry (batch job only)
        json_format: JSON lines (default) or human-readable console output
        level: Minimum level, as int or name ("DEBUG", "INFO", ...)
        suppress_noisy: Quiet down HTTP and Kafka client loggers
        stream: Output stream (default: sys.stdout)

    Returns:
        Configured logger instance
    """
    # Stage and task index describe this process only
    clear_log_context()
    if stage:
        set_log_context(stage=stage)
    if task_index:
        set_log_context(task_index=task_index)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(_parse_level(level))
    handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(_parse_level(level))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug(
        "Logging initialized: json=%s", json_format, extra={"operation": "setup_logging"}
    )
    return logger


def log_worker_startup(
    logger: logging.Logger,
    worker_name: str,
    bootstrap_servers: str | None = None,
    output_topic: str | None = None,
    extra_config: dict | None = None,
) -> None:
    """
    Log standard startup information including transport configuration.

    Call this at process startup so bootstrap server and topic mismatches
    are visible in the first lines of the log.
    """
    logger.info("Starting %s", worker_name)
    if bootstrap_servers:
        logger.info("Kafka bootstrap servers: %s", bootstrap_servers)
    if output_topic:
        logger.info("Output topic: %s", output_topic)

    if extra_config:
        for key, value in extra_config.items():
            logger.info("%s: %s", key, value)

"""TMDB export pipeline processes. Use --help for usage."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from config.config import (
    BackfillConfig,
    FanoutConfig,
    load_backfill_config,
    load_fanout_config,
)
from core.download.http_client import create_session
from core.errors.exceptions import ConfigurationError
from core.logging.setup import log_worker_startup, setup_logging
from core.logging.utilities import log_exception
from tmdb_pipeline.backfill.exporter import BulkExporter, UnitOutcome
from tmdb_pipeline.common.encoder import load_trigger_encoder
from tmdb_pipeline.common.export_date import format_export_date, resolve_export_date
from tmdb_pipeline.common.producer import MessageProducer
from tmdb_pipeline.fanout.server import run_service

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tmdb-pipeline",
        description="Run the TMDB export pipeline processes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Daily bulk export (one run, then exit)
    python -m tmdb_pipeline backfill

    # Re-run the bulk export for a given day
    EXPORT_DATE=2024-07-01 python -m tmdb_pipeline backfill

    # Detail fan-out service
    python -m tmdb_pipeline serve
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config YAML (default: TMDB_PIPELINE_CONFIG or the bundled config.yaml)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("backfill", help="Run the Bulk Exporter once")
    subparsers.add_parser("serve", help="Run the Detail Fan-out HTTP service")

    return parser.parse_args(argv)


async def run_backfill(config: BackfillConfig) -> list[UnitOutcome]:
    """One Bulk Exporter run; any raised error is fatal to the run."""
    export_date = resolve_export_date(config.export_date)
    encoder = load_trigger_encoder()

    logger.info(
        "Starting Task #%s, Attempt #%s",
        config.task_index,
        config.task_attempt,
        extra={"task_attempt": config.task_attempt, "export_date": format_export_date(export_date)},
    )

    async with MessageProducer(config.kafka, config.producer, client_id="tmdb-backfill") as producer:
        async with create_session(
            timeout_total=None, timeout_sock_read=config.sock_read_timeout_seconds
        ) as session:
            exporter = BulkExporter(config, export_date, producer, encoder, session)
            outcomes = await exporter.run()

    logger.info(
        "Completed Task #%s, Attempt #%s",
        config.task_index,
        config.task_attempt,
        extra={"task_attempt": config.task_attempt, "export_date": format_export_date(export_date)},
    )
    return outcomes


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event) -> None:
    """First SIGINT/SIGTERM stops the service gracefully, a second one cancels everything."""

    def handle_signal(sig):
        logger.info("Received signal, initiating graceful shutdown", extra={"operation": sig.name})
        if not shutdown_event.is_set():
            shutdown_event.set()
        else:
            logger.warning("Received second signal, forcing immediate shutdown...")
            for task in asyncio.all_tasks(loop):
                task.cancel()

    if sys.platform == "win32":
        logger.debug("Signal handlers not supported on Windows, using KeyboardInterrupt")
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


async def serve(config: FanoutConfig) -> None:
    shutdown_event = asyncio.Event()
    setup_signal_handlers(asyncio.get_running_loop(), shutdown_event)
    await run_service(config, shutdown_event)


def _startup_details(config: BackfillConfig | FanoutConfig) -> dict[str, object]:
    if isinstance(config, BackfillConfig):
        return {
            "Export host": config.export_host,
            "Export types": ", ".join(config.export_types),
            "Bucket mount path": config.bucket_mount_path,
        }
    return {
        "Port": config.port,
        "Request timeout (s)": config.timeout_seconds,
        "Topic schema": "configured" if config.topic_schema else "bundled",
    }


def _load_config(args: argparse.Namespace) -> BackfillConfig | FanoutConfig:
    if args.command == "backfill":
        return load_backfill_config(args.config)
    return load_fanout_config(args.config)


def main(argv: list[str] | None = None) -> int:
    load_dotenv(Path.cwd() / ".env")
    args = parse_args(argv)

    try:
        config = _load_config(args)
    except ConfigurationError as e:
        setup_logging(stage=args.command, level=args.log_level or "INFO")
        log_exception(logger, e, "Failed to load configuration", include_traceback=False)
        return 1

    setup_logging(
        stage=args.command,
        task_index=config.task_index if isinstance(config, BackfillConfig) else None,
        json_format=config.log.json_format,
        level=args.log_level or config.log.level,
    )

    try:
        config.validate()
    except ConfigurationError as e:
        log_exception(logger, e, "Invalid configuration", include_traceback=False)
        return 1

    log_worker_startup(
        logger,
        "bulk exporter" if args.command == "backfill" else "detail fan-out service",
        bootstrap_servers=config.kafka.bootstrap_servers,
        output_topic=config.topic,
        extra_config=_startup_details(config),
    )

    try:
        if args.command == "backfill":
            asyncio.run(run_backfill(config))
        else:
            asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down")
        return 130
    except ConfigurationError as e:
        log_exception(logger, e, "Invalid configuration", include_traceback=False)
        return 1
    except Exception as e:
        log_exception(logger, e, f"{args.command} failed")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Tests for logging setup."""

import io
import json
import logging

import pytest

from core.logging.context import clear_log_context, get_log_context, set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import log_worker_startup, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_log_context()


class TestSetupLogging:
    def test_installs_single_json_handler(self):
        setup_logging(stream=io.StringIO())

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_console_format(self):
        setup_logging(json_format=False, stream=io.StringIO())

        assert isinstance(logging.getLogger().handlers[0].formatter, ConsoleFormatter)

    def test_json_lines_carry_stage_and_task_index(self):
        stream = io.StringIO()
        setup_logging(stage="backfill", task_index="4", stream=stream)

        logging.getLogger("tmdb_pipeline.test").info("hello")

        entry = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert entry["message"] == "hello"
        assert entry["stage"] == "backfill"
        assert entry["task_index"] == "4"

    def test_replaces_stale_context(self):
        set_log_context(stage="fanout", task_index="9", request_id="req-1")

        setup_logging(stage="backfill", stream=io.StringIO())

        assert get_log_context() == {"stage": "backfill", "task_index": "", "request_id": ""}

    def test_level_by_name(self):
        stream = io.StringIO()
        setup_logging(level="WARNING", stream=stream)

        logging.getLogger("tmdb_pipeline.test").info("hidden")

        assert stream.getvalue() == ""

    def test_unknown_level_name_falls_back_to_info(self):
        setup_logging(level="CHATTY", stream=io.StringIO())

        assert logging.getLogger().level == logging.INFO

    def test_suppresses_noisy_loggers(self):
        setup_logging(stream=io.StringIO())

        assert logging.getLogger("aiokafka").level == logging.WARNING
        assert logging.getLogger("aiohttp.access").level == logging.WARNING


class TestLogWorkerStartup:
    def test_logs_transport_settings(self, caplog):
        logger = logging.getLogger("test.startup")

        with caplog.at_level(logging.INFO, logger="test.startup"):
            log_worker_startup(
                logger, "bulk exporter", bootstrap_servers="kafka:9092", output_topic="tmdb-trigger"
            )

        messages = [r.getMessage() for r in caplog.records]
        assert "Starting bulk exporter" in messages
        assert "Kafka bootstrap servers: kafka:9092" in messages
        assert "Output topic: tmdb-trigger" in messages

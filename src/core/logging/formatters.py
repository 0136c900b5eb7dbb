"""Log formatters for JSON and console output."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from core.logging.context import get_log_context
from core.utils.json_serializers import json_serializer

# Query parameters whose values never reach the log
SECRET_QUERY_PARAM = re.compile(
    r"([?&])(api_key|sig|token|key|secret|password|auth)=[^&]*",
    re.IGNORECASE,
)


def redact_url(url: str) -> str:
    return SECRET_QUERY_PARAM.sub(r"\1\2=[REDACTED]", url)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, no prefix.

    The container log collector parses each stdout line as a structured
    entry, so only whitelisted extras are emitted, numeric extras keep a
    numeric type, and URL extras have secret query parameters redacted.
    """

    # Whitelisted extras mapped to the type they are coerced to (None: as is)
    FIELDS: dict[str, type | None] = {
        # Timing
        "duration_ms": float,
        # HTTP
        "http_status": int,
        "http_method": None,
        "api_url": None,
        "api_endpoint": None,
        "download_url": None,
        # Errors
        "error_category": None,
        "error_message": None,
        "error_type": None,
        "error": None,
        # Export run
        "task_attempt": None,
        "export_date": None,
        "export_type": None,
        "export_types": None,
        "output_path": None,
        "bytes_written": int,
        "lines_read": int,
        "records_failed": int,
        "messages_published": int,
        "messages_failed": int,
        # Fan-out
        "entity_id": int,
        "entity_type": None,
        "entity_types": None,
        "response_type": None,
        "request_count": int,
        "message_count": int,
        "failure_count": int,
        "subscription": None,
        # Transport
        "topic": None,
        "bootstrap_servers": None,
        "security_protocol": None,
        "port": int,
        "timeout_seconds": float,
        "operation": None,
    }

    URL_FIELDS = frozenset({"download_url", "api_url", "api_endpoint"})

    # Source file:line is noise on INFO/WARNING entries
    SOURCE_LEVELS = frozenset({logging.DEBUG, logging.ERROR, logging.CRITICAL})

    @staticmethod
    def _coerce(kind: type | None, value: Any) -> Any:
        if kind is None:
            return value
        try:
            return kind(value)
        except (TypeError, ValueError):
            return None

    def _fields(self, record: logging.LogRecord) -> dict[str, Any]:
        fields = {}
        for name, kind in self.FIELDS.items():
            value = getattr(record, name, None)
            if value is None:
                continue
            value = self._coerce(kind, value)
            if name in self.URL_FIELDS and isinstance(value, str):
                value = redact_url(value)
            fields[name] = value
        return fields

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, UTC)
        entry: dict[str, Any] = {
            "ts": created.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            # Cloud Logging reads "severity" for the entry level
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({key: value for key, value in get_log_context().items() if value})

        if record.levelno in self.SOURCE_LEVELS:
            entry["file"] = f"{record.filename}:{record.lineno}"

        entry.update(self._fields(record))

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "stacktrace": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    ``<time> - <LEVEL> - [stage] - [export_type] [request] message`` for local runs.

    Levels are colored only when stdout is a TTY.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _level(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno) if self._use_colors else None
        return f"{color}{record.levelname}{self.RESET}" if color else record.levelname

    def format(self, record: logging.LogRecord) -> str:
        context = get_log_context()

        parts = [self.formatTime(record, "%Y-%m-%d %H:%M:%S"), self._level(record)]
        if context["stage"]:
            parts.append(f"[{context['stage']}]")

        tags = []
        export_type = getattr(record, "export_type", None)
        if export_type:
            tags.append(f"[{export_type}]")
        if context["request_id"]:
            # Message ids are long; the prefix is enough to follow one request
            tags.append(f"[{context['request_id'][:8]}]")

        message = " ".join([*tags, record.getMessage()])
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        parts.append(message)
        return " - ".join(parts)

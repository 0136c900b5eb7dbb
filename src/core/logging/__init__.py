"""
Structured logging module.

Provides JSON logging with context propagation.
"""

from core.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from core.logging.context_managers import LogContext, log_phase
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import (
    log_worker_startup,
    setup_logging,
)
from core.logging.utilities import log_exception, log_with_context

__all__ = [
    # Setup
    "setup_logging",
    "log_worker_startup",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    # Context Managers
    "LogContext",
    "log_phase",
    # Utilities
    "log_with_context",
    "log_exception",
]

"""
Datum structured logging.

Statement logs, migration progress and connection lifecycle events are
emitted under the "datum" logger namespace.
"""

from datum.logging.config import (
    DatumLogger,
    LogFormat,
    LogLevel,
    configure_logging,
    get_logger,
)
from datum.logging.context import LogContext, get_log_context, with_log_context
from datum.logging.formatters import JSONFormatter, TextFormatter

__all__ = [
    # Configuration
    "configure_logging",
    "get_logger",
    "DatumLogger",
    "LogLevel",
    "LogFormat",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    # Context
    "LogContext",
    "get_log_context",
    "with_log_context",
]

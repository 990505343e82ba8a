"""
Logging configuration for the settings engine.

Format: 2026-01-06T14:05:52Z [source] LEVEL message

Environment Variables:
    LOG_LEVEL: Set to "DEBUG", "TRACE", or "INFO" (default)
               - INFO: writes, batch outcomes, bootstrap
               - DEBUG: registration, cache invalidation, skipped writes
               - TRACE: very verbose low-level diagnostics

Usage:
    from settings_engine.logging_config import configure_logging, get_logger

    configure_logging(source="settings")
    logger = get_logger(__name__)
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime

# Custom TRACE level for very verbose diagnostics
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def _trace(self: logging.Logger, message: object, *args: object, **kw: object) -> None:
    """Log a message at TRACE level (5)."""
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kw)  # type: ignore[arg-type]


logging.Logger.trace = _trace  # type: ignore[attr-defined]


class ISO8601Formatter(logging.Formatter):
    """Formatter producing ISO8601 UTC timestamps.

    Output format: 2026-01-06T14:05:52Z [source] LEVEL message
    """

    def __init__(self, source: str = "settings"):
        self.source = source
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        message = record.getMessage()

        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        return f"{timestamp} [{self.source}] {record.levelname} {message}"


def resolve_level(name: str | None = None, debug: bool | None = None) -> int:
    """Map a level name (or LOG_LEVEL) to a logging level; unknown names mean INFO."""
    level_name = (name or os.getenv("LOG_LEVEL", "")).upper()
    if level_name == "TRACE":
        return TRACE
    if level_name == "DEBUG" or debug:
        return logging.DEBUG
    if level_name in ("WARNING", "ERROR", "CRITICAL"):
        return logging.getLevelName(level_name)
    return logging.INFO


def configure_logging(
    source: str = "settings",
    level: int | None = None,
    debug: bool | None = None,
) -> logging.Logger:
    """Configure logging for a service using the settings engine.

    Args:
        source: Source identifier shown in brackets
        level: Logging level (defaults to INFO, or DEBUG/TRACE from LOG_LEVEL)
        debug: Enable debug mode (overrides level to DEBUG)

    Returns:
        Configured root logger
    """
    if level is None:
        level = resolve_level(debug=debug)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ISO8601Formatter(source=source))
    root_logger.addHandler(handler)

    # PocketBase SDK requests go through httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name."""
    return logging.getLogger(name)

"""Logging for Rapport.

Everything logs under the "rapport" logger tree. setup_logging attaches
two handlers to it:
    - console: one short line per record, context appended as key=value
    - file: rapport.log in the log directory, one JSON object per line,
      rotated at 5 MB with three backups

Structured fields go in the "context" extra, never in the message
format string, so the JSON log stays queryable:

    from rapport.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Contact recalculated", extra={"context": {"contact_id": 12}})

Library code only calls get_logger. The CLI owns setup_logging and
shutdown_logging.
"""

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

ROOT_LOGGER_NAME = "rapport"


class JSONFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, module, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "context"):
            log_data["context"] = record.context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Dates and enums in context go through str()
        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """HH:MM:SS LEVL logger: message [key=value, ...]"""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%H:%M:%S")
        level = record.levelname[:4]
        message = record.getMessage()

        context = getattr(record, "context", None)
        if context:
            message += " [" + ", ".join(f"{k}={v}" for k, v in context.items()) + "]"

        return f"{timestamp} {level:4s} {record.name}: {message}"


_logging_initialized = False


def setup_logging(
    log_dir: Optional[Path] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """Attach the console and JSON file handlers to the rapport logger.

    A second call is a no-op until shutdown_logging runs.

    Args:
        log_dir: Where rapport.log goes; the configured log_path if omitted
        console_level: Threshold for the console handler
        file_level: Threshold for the file handler
    """
    global _logging_initialized

    if _logging_initialized:
        return

    if log_dir is None:
        from rapport.core.config import get_config

        log_dir = get_config().log_path
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ConsoleFormatter())
    root_logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        log_dir / "rapport.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(file_handler)

    _logging_initialized = True
    root_logger.info("Logging initialized", extra={"context": {"log_dir": str(log_dir)}})


def shutdown_logging() -> None:
    """Close and detach every handler on the rapport logger."""
    global _logging_initialized

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    _logging_initialized = False


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, always under "rapport." (no double prefix)."""
    prefix = f"{ROOT_LOGGER_NAME}."
    if name.startswith(prefix):
        name = name[len(prefix):]
    return logging.getLogger(f"{prefix}{name}")

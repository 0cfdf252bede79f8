"""Logging setup for relaybench.

The ``relaybench`` logger carries a NullHandler, so importing the package
prints nothing. Benchmark runs turn output on explicitly:

    import relaybench

    relaybench.enable_console_logging(level="DEBUG")
    relaybench.enable_file_logging("logs/bench.log")   # rotating
    relaybench.enable_json_logging()                   # one JSON object per line
    relaybench.configure_from_env()

Environment variables read by ``configure_from_env``:
    RB_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    RB_LOG_FILE: Path to a rotating log file
    RB_LOG_JSON: "1" to format records as JSON
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal

__all__ = [
    "JsonFormatter",
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]

DEFAULT_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-7s %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

LOGGER_NAME = "relaybench"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Example output:
        {"timestamp": "2026-01-15T10:30:00.123456+00:00", "level": "WARNING",
         "logger": "relaybench.transport.bridge", "message": "Dropped ..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        scenario = getattr(record, "scenario", None)
        if scenario is not None:
            log_data["scenario"] = scenario
        return json.dumps(log_data)


def _get_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level {level!r}")
    return value


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _install(handler: logging.Handler, level: LogLevel | int) -> logging.Handler:
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    handler.setLevel(_get_level(level))
    logger.addHandler(handler)
    return handler


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Log to stderr.

    Args:
        level: Log level name or int.
        format: Log message format string.
        date_format: Date format for %(asctime)s.

    Returns:
        The created StreamHandler.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format, date_format))
    return _install(handler, level)


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    json_format: bool = False,
) -> RotatingFileHandler:
    """Log to a size-rotated file.

    Args:
        path: Log file path. Parent directories are created.
        level: Log level name or int.
        max_bytes: Size at which the file rolls over. Default 10 MB.
        backup_count: Rolled files kept. Default 5.
        json_format: Write records with ``JsonFormatter``.

    Returns:
        The created RotatingFileHandler.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT))
    return _install(handler, level)


def enable_json_logging(level: LogLevel | int = "INFO") -> logging.StreamHandler:
    """Log JSON records to stderr."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    return _install(handler, level)


def configure_from_env() -> None:
    """Configure logging from RB_LOGGING, RB_LOG_FILE and RB_LOG_JSON.

    Does nothing when neither RB_LOGGING nor RB_LOG_FILE is set.
    """
    level = os.environ.get("RB_LOGGING", "").upper()
    log_file = os.environ.get("RB_LOG_FILE", "")
    use_json = os.environ.get("RB_LOG_JSON", "") == "1"

    if not level and not log_file:
        return

    level = level or "INFO"
    if log_file:
        enable_file_logging(log_file, level=level, json_format=use_json)
    elif use_json:
        enable_json_logging(level=level)
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    _get_logger().setLevel(_get_level(level))


def set_module_level(module: str, level: LogLevel | int) -> None:
    """Set the level of one subpackage logger.

    Example:
        >>> relaybench.set_module_level("transport.bridge", "DEBUG")
    """
    logging.getLogger(f"{LOGGER_NAME}.{module}").setLevel(_get_level(level))


def disable_logging() -> None:
    """Remove every handler and silence the package logger."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)

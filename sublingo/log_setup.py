"""Logging configuration for SubLingo."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, TextIO

from .utils import ensure_dir_exists

DEFAULT_LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_LEVEL_NAMES = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Libraries that log every request or weight shard at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "transformers", "urllib3", "filelock")


def parse_log_level(name: Optional[str], default: int = logging.INFO) -> int:
    """Maps a level name such as 'debug' to its logging constant."""
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


def _reset_handlers(root: logging.Logger) -> None:
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


def _file_handler(log_dir: str, log_file: str, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    ensure_dir_exists(log_dir)
    return RotatingFileHandler(
        os.path.join(log_dir, log_file),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )


def setup_logging(
    log_level: int = logging.INFO,
    log_dir: str = "logs",
    log_file: str = "sublingo.log",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    max_bytes: int = 10 * 1024 * 1024, # 10 MB
    backup_count: int = 5,
    console_stream: Optional[TextIO] = None
) -> None:
    """
    Configures the root logger with a console and a rotating file handler.

    Calling it again replaces the handlers installed before, which is how the
    entry points move from the bootstrap log to the location named in the
    config file.

    Args:
        log_level: The minimum logging level (e.g., logging.INFO, logging.DEBUG).
        log_dir: The directory to store log files.
        log_file: The name of the log file.
        log_format: The format string for log messages.
        date_format: The format string for timestamps in logs.
        max_bytes: Maximum size of a log file before rotation.
        backup_count: Number of backup log files to keep.
        console_stream: Stream for console output. Defaults to stderr; stdout
                        is reserved for subtitle text.
    """
    root = logging.getLogger()
    _reset_handlers(root)
    root.setLevel(log_level)
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console = logging.StreamHandler(console_stream or sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(log_level)
    root.addHandler(console)

    try:
        file_handler = _file_handler(log_dir, log_file, max_bytes, backup_count)
    except Exception as e:
        # Console logging keeps working without the file
        root.error(f"Failed to set up file logging at {log_dir}/{log_file}: {e}", exc_info=True)
    else:
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        root.debug(f"Logging initialized. Log file: {file_handler.baseFilename}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

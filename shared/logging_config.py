"""Centralized logging configuration with file rotation support."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Default settings
DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_LOG_FORMAT = "[%(levelname)s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5


def setup_logging(
    name: str,
    level: str = "INFO",
    log_file: str | Path | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    stream: object = None,
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    file_format: str | None = None,
) -> logging.Logger:
    """
    Configure logging with optional file rotation.

    Args:
        name: Logger name (e.g., 'keyreg')
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file. If None, only console logging.
        max_bytes: Maximum size of each log file before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)
        stream: Stream for console logging (default: stderr)
        log_format: Console log message format
        date_format: Timestamp format
        file_format: Log file message format (default: same as log_format)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Clear any existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter(file_format or log_format, datefmt=date_format)
        )
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_default_log_dir() -> Path:
    """Get the default log directory (~/.keyreg/logs)."""
    return Path.home() / ".keyreg" / "logs"


def get_default_log_file() -> Path:
    """Get the default log file path."""
    return get_default_log_dir() / "keyreg.log"

"""Logging configuration for the drill."""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from vocabdrill.config import LoggingSettings, settings


def setup_logging(
    first_message: str = "", logging_settings: Optional[LoggingSettings] = None
) -> None:
    """Set up logging configuration."""
    logging_settings = logging_settings or settings.logging

    level = logging_settings.level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove any existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create formatters
    formatter = logging.Formatter(logging_settings.format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler if a log directory is specified
    if logging_settings.dir:
        log_dir = Path(logging_settings.dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "vocabdrill.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=logging_settings.max_bytes,
            backupCount=logging_settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_logger.info(f"Log file: {log_file}")

    # Set logging levels for third-party libraries
    logging.getLogger("faker").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    if first_message:
        root_logger.info(first_message)
    root_logger.info(f"Logging configured with level: {logging.getLevelName(level)}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)

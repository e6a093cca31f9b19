"""Unified logging configuration for the workhorse core.

Provides consistent logging with console output and, when a log directory
is writable, rotating file output.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from workhorse.settings import settings

LOG_FORMAT = "[%(asctime)s.%(msecs)03d][%(levelname)s][%(filename)s:%(lineno)d]: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "workhorse"


def _ensure_root_logger_configured() -> None:
    """Attach the formatted console handler to the workhorse parent logger once."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)

    has_formatted_handler = any(
        isinstance(h, logging.StreamHandler)
        and h.formatter
        and "%(asctime)s" in (h.formatter._fmt if hasattr(h.formatter, "_fmt") else "")
        for h in root_logger.handlers
    )
    if has_formatted_handler:
        return

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    # Keep workhorse records out of the host application's root handlers
    root_logger.propagate = False


def setup_logging(log_name: str = "workhorse") -> logging.Logger:
    """
    Setup logging with console and rotating file output.

    Log file path pattern: {logs_root}/{log_name}.log

    Args:
        log_name: Name of the log file (without .log extension)

    Returns:
        Configured component logger
    """
    _ensure_root_logger_configured()

    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{log_name}")

    log_dir = _get_logs_root()
    if log_dir:
        log_file_path = os.path.join(log_dir, f"{log_name}.log")
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        if not any(
            isinstance(h, RotatingFileHandler) and h.baseFilename == log_file_path
            for h in root_logger.handlers
        ):
            file_handler = RotatingFileHandler(
                log_file_path,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            root_logger.addHandler(file_handler)

        logger.propagate = True

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        Logger inside the workhorse.* namespace
    """
    _ensure_root_logger_configured()

    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


def _get_logs_root() -> Path | None:
    """Return the configured logs directory, or None if it cannot be created."""
    logs_root = settings.get_logs_root()
    if _can_create_dir(logs_root):
        return logs_root
    return None


def _can_create_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        return True
    except (OSError, PermissionError):
        return False


_ensure_root_logger_configured()

"""
Logging utility functions.
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

# Global dictionary to store logger instances
_loggers = {}

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def close_logger(name: str) -> None:
    """
    Close a logger's handlers.

    Args:
        name: Name of the logger
    """
    if name in _loggers:
        logger = _loggers[name]
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
        del _loggers[name]


def setup_logger(
    name: str,
    log_dir: str,
    level: str = "INFO",
    max_bytes: int = 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Set up a logger with file and console handlers.

    Child loggers (``name.module``) propagate into these handlers, so the
    whole package only needs this called once for its root name.

    Args:
        name: Name of the logger
        log_dir: Directory to store log files
        level: Logging level name
        max_bytes: Size at which the log file is rotated
        backup_count: Number of rotated files to keep

    Returns:
        Logger instance

    Raises:
        OSError: If the log directory cannot be created
    """
    # Close any existing logger with the same name
    close_logger(name)

    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError as e:
        raise OSError(f"Failed to create log directory: {log_dir}") from e

    if not os.access(log_dir, os.W_OK):
        raise OSError(f"Log directory is not writable: {log_dir}")

    log_file = os.path.join(log_dir, f"{name}.log")
    try:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            delay=False  # Create file immediately
        )
    except OSError as e:
        raise OSError(f"Failed to create log file: {log_file}") from e

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logger.handlers = []
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    logger.propagate = False

    _loggers[name] = logger
    return logger


def get_logger(name: str) -> Optional[logging.Logger]:
    """
    Get an existing logger instance.

    Args:
        name: Name of the logger

    Returns:
        Logger instance if it exists, None otherwise
    """
    return _loggers.get(name)

"""
Logging for the Dota cosmetic stats pipeline.

All component loggers hang below the ``dotacosmetics`` logger, which owns
the only handlers: stdout always, plus a log file when one is configured
(``DOTACOSMETICS_LOG_FILE`` or ``add_file_handler``).
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER_NAME = "dotacosmetics"

DEFAULT_LEVEL = logging.getLevelName(os.getenv("DOTACOSMETICS_LOG_LEVEL", "INFO").upper())
if not isinstance(DEFAULT_LEVEL, int):
    DEFAULT_LEVEL = logging.INFO


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: int = DEFAULT_LEVEL,
    log_file: Optional[Path] = None,
    console: bool = True
) -> logging.Logger:
    """
    Attach handlers to a logger unless it already has some.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        console: Whether to log to stdout

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    if console:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(handler)
    if log_file:
        add_file_handler(log_file, logger)
    return logger


def add_file_handler(log_file, logger: Optional[logging.Logger] = None) -> logging.Logger:
    """Also write records of ``logger`` (the package logger by default) to ``log_file``."""
    logger = logger or logging.getLogger(ROOT_LOGGER_NAME)
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Component logger; records propagate to the configured package logger."""
    env_log_file = os.getenv("DOTACOSMETICS_LOG_FILE")
    setup_logger(log_file=Path(env_log_file) if env_log_file else None)
    return logging.getLogger(name)


def get_fetch_logger() -> logging.Logger:
    return get_logger(f"{ROOT_LOGGER_NAME}.fetch")


def get_parse_logger() -> logging.Logger:
    return get_logger(f"{ROOT_LOGGER_NAME}.parse")


def get_pipeline_logger() -> logging.Logger:
    return get_logger(f"{ROOT_LOGGER_NAME}.pipeline")


def get_database_logger() -> logging.Logger:
    """Logger for the store, ledger, aggregation engine and serializer."""
    return get_logger(f"{ROOT_LOGGER_NAME}.database")


def get_utils_logger() -> logging.Logger:
    return get_logger(f"{ROOT_LOGGER_NAME}.utils")

"""
Logging configuration for the B.O.P stack service.

Sets up application-wide logging with console output and, when a log
directory is configured, rotating file output. Data-quality findings from
the flange catalog get their own logger so they can be reviewed separately.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler


# Log format - includes timestamp, logger name, level, and message
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DATA_QUALITY_LOGGER = "data_quality"


def _file_handler(path: str, level: int, backup_count: int = 5) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_dir: str = "") -> None:
    """
    Set up application-wide logging configuration.

    This creates handlers for:
    - Console output (stdout)
    - General application log file (when log_dir is set)
    - Error log file, ERROR and above (when log_dir is set)

    Args:
        log_level: Minimum level name to log (default: "INFO")
        log_dir: Directory for rotating log files; empty means console only
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        root_logger.addHandler(_file_handler(os.path.join(log_dir, "app.log"), level))
        root_logger.addHandler(_file_handler(os.path.join(log_dir, "errors.log"), logging.ERROR))

    setup_data_quality_logger(log_dir)

    root_logger.info("=" * 80)
    root_logger.info(f"Log Level: {logging.getLevelName(level)}")
    root_logger.info(f"Logs Directory: {log_dir or '(console only)'}")
    root_logger.info("=" * 80)


def setup_data_quality_logger(log_dir: str = "") -> logging.Logger:
    """
    Set up the logger for catalog data-quality warnings.

    Wrench / truck PSI mismatches and skipped ingestion rows are logged here.
    They still propagate to the root logger; with a log directory they are
    also kept in data_quality.log for later review.

    Returns:
        Logger instance for data-quality events
    """
    logger = logging.getLogger(DATA_QUALITY_LOGGER)
    logger.setLevel(logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if log_dir:
        logger.addHandler(
            _file_handler(os.path.join(log_dir, "data_quality.log"), logging.INFO, backup_count=10)
        )

    return logger


def get_data_quality_logger() -> logging.Logger:
    """Get the data-quality logger (configured or not)."""
    return logging.getLogger(DATA_QUALITY_LOGGER)

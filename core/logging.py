"""
Logging setup utility

Logging configuration for the web process.
- Console: INFO
- File: INFO (TimedRotatingFileHandler, daily)

Usage:
    from core.logging import setup_logging
    setup_logging("web")
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 14  # keep two weeks of files

# Loggers that flood the output at INFO
NOISY_LOGGERS = [
    "aiosqlite",       # executing/completed per query
    "httpcore",        # connection details
    "httpx",           # request lines
    "asyncio",
    "uvicorn.access",  # one line per request
]


def _log_dir_for(process_name: str) -> Path:
    if process_name == "web":
        return Paths.WEB_LOGS_DIR
    return Paths.LOGS_DIR


def setup_logging(
    process_name: str,
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
) -> logging.Logger:
    """Initialise logging

    Writes to a per-process log directory with midnight rollover.

    Args:
        process_name: Process name ("web")
        console_level: Console level (default INFO)
        file_level: File level (default INFO)

    Returns:
        Configured root logger
    """
    log_dir = _log_dir_for(process_name)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f"{process_name}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers do the filtering

    # avoid duplicate handlers on re-init
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        interval=1,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.suffix = "%Y-%m-%d"  # web.log.2026-10-19
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialised: {process_name}")
    root_logger.info(f"  - console: {logging.getLevelName(console_level)}")
    root_logger.info(f"  - file: {log_file} ({logging.getLevelName(file_level)}, daily rotation)")

    return root_logger


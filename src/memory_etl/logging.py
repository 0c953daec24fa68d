"""Logging for memory-etl commands.

Every module logs through a child of the ``memory_etl`` logger. A command
calls setup_logging() once to give that tree a per-command log file and,
optionally, stderr output.
"""

import logging
import sys
from pathlib import Path

PACKAGE_LOGGER = "memory_etl"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_LOG_DIR = Path.home() / "memory-etl" / "logs"


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)


def setup_logging(
    command: str,
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Send package logs to ``<log_dir>/<command>.log`` and optionally stderr.

    Handlers are attached once per process; later calls only change the
    level of the package logger.

    Args:
        command: CLI command being run (``ingest``, ``verify``, ...)
        log_dir: Log file directory (defaults to ~/memory-etl/logs/)
        level: Minimum level to record
        console: Also write records to stderr

    Returns:
        The ``memory_etl`` package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    if package_logger.handlers:
        return package_logger

    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    _attach(package_logger, logging.FileHandler(log_dir / f"{command}.log", encoding="utf-8"), level)
    if console:
        _attach(package_logger, logging.StreamHandler(sys.stderr), level)
    return package_logger


def get_logger(component: str) -> logging.Logger:
    """Module logger under the package tree, e.g. ``memory_etl.store``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{component}")
